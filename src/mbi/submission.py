"""
Submission sink: posts one flattened Response to the remote form endpoint.

The endpoint is opaque. Status and body are never read back; only
transport errors are observed, and those are logged and swallowed. A failed
submission is not retried: the local Response stays the source of truth and
is replayed by resubmit_all() after completion.

Two delivery modes:
    - submit_async(): fire-and-forget on a single background worker, used
      during the survey so navigation never waits on the network
    - resubmit_all(): strictly sequential, each request finished before the
      next starts, used for the post-completion replay
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Iterable, Mapping, Optional

import requests

from mbi.model import Response
from mbi.state_machine import utc_timestamp

logger = logging.getLogger(__name__)

NO_EMAIL = "NA"


def build_form_payload(
    response: Response,
    fields: Mapping[str, str],
    respondent_id: str,
    interview_id: Optional[str],
    email: str,
    sent_at: str,
) -> Dict[str, str]:
    """Flatten a Response plus session identifiers into form entry ids → values."""
    values = {
        "respondent_id": respondent_id,
        "timestamp": sent_at,
        "interview_id": interview_id or "",
        "comparison_id": response.comparison_id,
        "outlet_left_codename": response.outlet_left_codename,
        "outlet_right_codename": response.outlet_right_codename,
        "chosen_outlet_codename": response.chosen,
        "section_type": response.section_type,
        "email": email or NO_EMAIL,
    }
    return {fields[name]: value for name, value in values.items()}


class FormSubmitter:
    """
    Delivers responses to a form endpoint with a shared requests.Session.

    Args:
        url: Form endpoint
        fields: Response field name -> form entry id
        timeout: Seconds per request
        session: Optional requests session (for connection pooling / tests)
        clock: Returns the send timestamp
    """

    def __init__(
        self,
        url: str,
        fields: Mapping[str, str],
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self.url = url
        self.fields = dict(fields)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock or utc_timestamp
        self._executor: Optional[ThreadPoolExecutor] = None

    def submit(
        self,
        response: Response,
        respondent_id: str,
        interview_id: Optional[str],
        email: str = NO_EMAIL,
    ) -> bool:
        """POST one response and wait for it. Returns False on transport failure."""
        payload = build_form_payload(response, self.fields, respondent_id, interview_id, email, self.clock())
        try:
            self.session.post(
                self.url,
                data=payload,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Error submitting response %s: %s", response.comparison_id, e)
            return False
        logger.info("Response submitted: %s", response.comparison_id)
        return True

    def submit_async(
        self,
        response: Response,
        respondent_id: str,
        interview_id: Optional[str],
        email: str = NO_EMAIL,
    ) -> "Future[bool]":
        """Queue a submission and return immediately. The Future never raises."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mbi-submit")
        return self._executor.submit(self.submit, response, respondent_id, interview_id, email)

    def resubmit_all(
        self,
        responses: Iterable[Response],
        respondent_id: str,
        interview_id: Optional[str],
        email: str,
    ) -> int:
        """Submit every response in order, one at a time. Returns how many succeeded."""
        delivered = 0
        for response in responses:
            if self.submit(response, respondent_id, interview_id, email):
                delivered += 1
        return delivered

    def drain(self) -> None:
        """Block until every queued submit_async() call has finished."""
        self.close(wait=True)

    def close(self, wait: bool = True) -> None:
        """Stop the background worker; with wait=True, queued submissions finish first."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
