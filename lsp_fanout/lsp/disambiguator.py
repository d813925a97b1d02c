"""user selection among several candidates"""

from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence

from lsp_fanout.errors import ValidationError
from lsp_fanout.lsp.types import Candidate, Outcome, OutcomeKind
from lsp_fanout.utils.logging_utils import Logger


RenderFn = Callable[[Candidate], str]


class Selector(Protocol):
    """host picker; resolves to one of `candidates` or None when dismissed"""

    def select(
        self,
        candidates: Sequence[Candidate],
        render: RenderFn,
        prompt: str = "",
        kind: str = "",
    ) -> Awaitable[Optional[Candidate]]:
        ...


class Disambiguator:
    """resolves an outcome to a single candidate

    the chosen candidate is returned untouched, so follow-up requests go to
    the client that produced it.
    """

    def __init__(self, selector: Selector):
        self.selector = selector

    async def choose(
        self,
        outcome: Outcome,
        render: RenderFn,
        prompt: str = "",
        kind: str = "",
        auto_single: bool = True,
    ) -> Optional[Candidate]:
        """pick one candidate of `outcome`

        Args:
            outcome: aggregated outcome
            render: label function for one candidate
            prompt: picker prompt
            kind: picker kind hint (e.g. "codeaction", "callhierarchy")
            auto_single: return a Single outcome's item without asking

        Returns:
            the chosen candidate, or None (empty outcome or no choice)
        """
        if outcome.kind is OutcomeKind.EMPTY:
            return None
        if outcome.kind is OutcomeKind.SINGLE and auto_single:
            return outcome.items[0]

        choice = await self.selector.select(list(outcome.items), render, prompt=prompt, kind=kind)
        if choice is None:
            Logger.instance().debug(f"{kind or 'selection'} cancelled by user")
            return None
        if not any(choice is c for c in outcome.items):
            # hosts may hand back an equal copy; map it back to ours
            matches: List[Any] = [c for c in outcome.items if c == choice]
            if not matches:
                raise ValidationError("choice", "selector returned an item that is not a candidate")
            choice = matches[0]
        return choice
