"""
MBI (Media Bias in Italy) Pairwise Survey Package

Administers a pairwise-comparison survey: respondents see two media outlets
at a time and pick the one they perceive as less biased, or "don't know".

ARCHITECTURAL GUARANTEE:
------------------------
The domain layer (model, pairing, responses, state_machine) contains ZERO
knowledge of:
    - HTTP transport
    - Storage backends
    - Rendering or event binding

Side effects live in the adapter layer (catalog, persistence, submission)
and are wired together by mbi.session.
"""

__version__ = "0.1.0"
