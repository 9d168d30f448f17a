#!/usr/bin/env python3
"""
Survey Demo: catalog → pairs → simulated respondent → contact replay

Shows the full workflow:
1. Load the outlet catalog and start a session
2. Answer every comparison (with one change of mind and a reload)
3. Complete the survey and replay responses with a contact e-mail

Submissions are printed instead of posted.
"""

import logging

from mbi.config import SurveyConfig
from mbi.log_utils import setup_logging
from mbi.model import SurveyPhase
from mbi.persistence import MemoryStore
from mbi.randomness import RandomSource
from mbi.session import SurveySession
from mbi.submission import FormSubmitter


class _PrintingSession:
    """Stands in for requests.Session: prints the form payload."""

    def post(self, url, data=None, headers=None, timeout=None):
        print(f"      POST {data}")


def main():
    setup_logging("mbi", level=logging.WARNING)
    config = SurveyConfig(catalog_path="data/outlets.csv")
    store = MemoryStore()
    rng = RandomSource(seed=7)
    submitter = FormSubmitter(config.form_url, config.form_fields, session=_PrintingSession())

    print("=" * 80)
    print("SURVEY DEMO: catalog → pairs → respondent → contact replay")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Consent
    # =========================================================================
    print("\n1. STARTING SESSION...")
    session = SurveySession(config, store, submitter=submitter, rng=rng)
    session.initialize()
    session.give_consent()
    print(f"   ✓ Respondent: {session.state.respondent_id}")
    print(f"   ✓ Interview: {session.state.interview_id}")
    print(f"   ✓ Comparisons: {len(session.state.pairs)}")

    # =========================================================================
    # STEP 2: Answer
    # =========================================================================
    print("\n2. ANSWERING...")
    answered = 0
    while session.phase is SurveyPhase.IN_PROGRESS:
        pair = session.current_pair
        print(f"   [{pair.comparison_id}] {pair.left.name} vs {pair.right.name}")
        session.select(pair.left.codename).result()
        if answered == 2:
            # Change of mind, then a reload: the resumed session keeps its pairs
            session.select_dont_know().result()
            session = SurveySession(config, store, submitter=submitter, rng=rng)
            session.initialize()
            print(f"   ✓ Reloaded at {session.state.position}")
        answered += 1
        session.next()
    print(f"   ✓ Stored responses: {len(session.state.responses)}")

    # =========================================================================
    # STEP 3: Contact follow-up
    # =========================================================================
    print("\n3. CONTACT REPLAY...")
    delivered = session.submit_contact("respondent@example.org")
    print(f"   ✓ Resubmitted: {delivered}")
    session.close()


if __name__ == "__main__":
    main()
