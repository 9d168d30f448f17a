"""
Response store: an ordered, upsert-by-identity collection of Responses.

The store is immutable. upsert() returns a new store so that it can live
inside the frozen SurveyState value.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from mbi.model import Response


class ResponseStore:
    """
    Insertion-ordered Responses keyed by comparison_id.

    Overwriting a response keeps its original slot, so all() reflects the
    order in which comparisons were first answered, not comparison_id order.
    """

    __slots__ = ("_responses", "_index")

    def __init__(self, responses: Iterable[Response] = ()) -> None:
        ordered: List[Response] = []
        index: Dict[str, int] = {}
        for response in responses:
            if response.comparison_id in index:
                ordered[index[response.comparison_id]] = response
            else:
                index[response.comparison_id] = len(ordered)
                ordered.append(response)
        self._responses: Tuple[Response, ...] = tuple(ordered)
        self._index = index

    def upsert(self, response: Response) -> "ResponseStore":
        """Return a new store with response inserted, or replacing the one with the same comparison_id."""
        return ResponseStore(self._responses + (response,))

    def get(self, comparison_id: str) -> Optional[Response]:
        position = self._index.get(comparison_id)
        if position is None:
            return None
        return self._responses[position]

    def all(self) -> List[Response]:
        return list(self._responses)

    def __contains__(self, comparison_id: object) -> bool:
        return comparison_id in self._index

    def __iter__(self) -> Iterator[Response]:
        return iter(self._responses)

    def __len__(self) -> int:
        return len(self._responses)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResponseStore):
            return NotImplemented
        return self._responses == other._responses

    def __hash__(self) -> int:
        return hash(self._responses)

    def __repr__(self) -> str:
        return f"ResponseStore({list(self._responses)!r})"
