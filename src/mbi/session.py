"""
Survey session: binds the pure state machine to its collaborators.

This is the event-binding layer. A front end forwards user intents
(consent, select, next, previous, contact e-mail) to a SurveySession and
renders whatever it exposes (current pair, progress, answer state). The
session performs the side effects:

    - loads the catalog and generates pairs once, on consent
    - submits each selection fire-and-forget
    - snapshots the state synchronously after every mutation
    - after completion, replays every response with the contact e-mail

Only SurveySession methods replace self.state.
"""

import logging
from concurrent.futures import Future
from typing import Callable, List, Optional

from mbi import state_machine as sm
from mbi.catalog import CatalogLoadError, load_catalog
from mbi.config import SurveyConfig
from mbi.model import DONT_KNOW, Outlet, Pair, Response, SurveyPhase, SurveyState
from mbi.pairing import generate_pairs
from mbi.persistence import (
    KeyValueStore,
    clear_session,
    load_completion,
    load_state,
    save_completion,
    save_state,
)
from mbi.randomness import RandomSource, source_from_env
from mbi.submission import FormSubmitter

logger = logging.getLogger(__name__)


class InvalidContactError(ValueError):
    """Raised when the contact value is not an e-mail address."""
    pass


class SurveySession:
    """
    One respondent's survey session.

    Args:
        config: Static survey configuration
        store: Resumable key-value store
        submitter: Submission sink (defaults to a FormSubmitter for config)
        rng: Random stream for pairs and interview ids
        catalog_loader: Returns the outlet catalog (defaults to reading
            config.catalog_path)
    """

    def __init__(
        self,
        config: SurveyConfig,
        store: KeyValueStore,
        submitter: Optional[FormSubmitter] = None,
        rng: Optional[RandomSource] = None,
        catalog_loader: Optional[Callable[[], List[Outlet]]] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.submitter = submitter or FormSubmitter(config.form_url, config.form_fields, timeout=config.submit_timeout)
        self.rng = rng or source_from_env()
        self.catalog_loader = catalog_loader or self._load_configured_catalog
        self.state: SurveyState = sm.new_state(config.section_ids, config.comparisons_per_section)
        self.outlets: List[Outlet] = []
        self.error: Optional[Exception] = None

    def _load_configured_catalog(self) -> List[Outlet]:
        return load_catalog(self.config.catalog_path, self.config.mainstream_outlets)

    def _load_outlets(self) -> None:
        try:
            self.outlets = self.catalog_loader()
        except CatalogLoadError as e:
            logger.error("Error loading outlets: %s", e)
            self.error = e
            raise

    def _persist(self) -> None:
        save_state(self.store, self.state)

    # =====================================================================
    # Lifecycle
    # =====================================================================

    @property
    def phase(self) -> SurveyPhase:
        return self.state.phase

    def initialize(self) -> SurveyPhase:
        """
        Resume a saved session if one exists, otherwise wait for consent.

        Raises:
            CatalogLoadError: If a saved session exists but the catalog
                cannot be loaded (the session is left in error state)
        """
        saved = load_state(self.store)
        if saved is None:
            return self.phase

        self._load_outlets()
        self.state = saved
        logger.info("Resumed session %s at %s", saved.respondent_id, saved.position)
        return self.phase

    def give_consent(self) -> SurveyPhase:
        """
        Start the survey: load outlets, generate the pair sequence once and
        move to the first comparison.

        Raises:
            CatalogLoadError: If the catalog cannot be loaded
            InsufficientOutletsError: If no section yields any comparison
        """
        self._load_outlets()
        pairs = generate_pairs(
            self.outlets,
            self.config.sections,
            self.config.comparisons_per_section,
            self.config.mainstream_outlets,
            self.rng,
        )
        self.state = sm.start(self.state, pairs, interview_id=sm.new_interview_id(self.rng))
        self._persist()
        logger.info("Started session %s with %d comparisons", self.state.respondent_id, len(pairs))
        return self.phase

    # =====================================================================
    # Respondent intents
    # =====================================================================

    def record(self, comparison_id: str, chosen: str) -> "Future[bool]":
        """Record (or overwrite) a choice, submit it in the background, and persist."""
        self.state = sm.record_selection(self.state, comparison_id, chosen)
        response = self.state.responses.get(comparison_id)
        future = self.submitter.submit_async(response, self.state.respondent_id, self.state.interview_id)
        self._persist()
        return future

    def select(self, codename: str) -> "Future[bool]":
        """Choose an outlet in the current comparison."""
        pair = self.current_pair
        if pair is None:
            raise sm.InvalidCommandError("No current comparison")
        return self.record(pair.comparison_id, codename)

    def select_dont_know(self) -> "Future[bool]":
        pair = self.current_pair
        if pair is None:
            raise sm.InvalidCommandError("No current comparison")
        return self.record(pair.comparison_id, DONT_KNOW)

    def next(self) -> SurveyPhase:
        self.state = sm.advance(self.state)
        self._persist()
        if self.state.phase is SurveyPhase.COMPLETED:
            save_completion(self.store, self.state)
            logger.info("Survey completed by %s (%d responses)", self.state.respondent_id, len(self.state.responses))
        return self.phase

    def previous(self) -> SurveyPhase:
        self.state = sm.retreat(self.state)
        self._persist()
        return self.phase

    # =====================================================================
    # Post-completion contact follow-up
    # =====================================================================

    def submit_contact(self, email: str) -> int:
        """
        Attach a contact e-mail and replay every recorded response with it,
        sequentially. Clears the session afterwards.

        Returns:
            Number of responses delivered without transport error

        Raises:
            InvalidContactError: If email does not look like an address
            InvalidCommandError: If no completed survey is available
        """
        email = (email or "").strip()
        if "@" not in email:
            raise InvalidContactError(f"Not an e-mail address: {email!r}")

        snapshot = load_completion(self.store)
        if snapshot is not None:
            respondent_id, interview_id, responses = snapshot.respondent_id, snapshot.interview_id, snapshot.responses
        elif self.state.phase is SurveyPhase.COMPLETED:
            respondent_id, interview_id, responses = (
                self.state.respondent_id, self.state.interview_id, self.state.responses.all())
        else:
            raise sm.InvalidCommandError("No completed survey to attach a contact to")

        # Queued e-mail-less submissions must land before the replay starts.
        self.submitter.drain()
        delivered = self.submitter.resubmit_all(responses, respondent_id, interview_id, email)
        logger.info("Resubmitted %d/%d responses with contact", delivered, len(responses))
        clear_session(self.store)
        self.submitter.close()
        return delivered

    def skip_contact(self) -> None:
        clear_session(self.store)
        self.submitter.close()

    def close(self) -> None:
        self.submitter.close()

    # =====================================================================
    # View state
    # =====================================================================

    @property
    def current_pair(self) -> Optional[Pair]:
        return sm.current_pair(self.state)

    @property
    def current_response(self) -> Optional[Response]:
        return sm.current_response(self.state)

    def has_answer(self) -> bool:
        return sm.has_answer(self.state)

    def can_go_back(self) -> bool:
        return self.phase is SurveyPhase.IN_PROGRESS and not sm.is_first_position(self.state)

    def is_last_comparison(self) -> bool:
        return sm.is_last_position(self.state)

    def progress(self) -> float:
        return sm.progress(self.state)


__all__ = ["InvalidContactError", "SurveySession"]
