from __future__ import annotations


class DeferredNavigator:
    """
    Records the pending navigation instead of performing it.

    The page (meta refresh) or the API client carries out the transition once
    `delay_seconds` have passed, so the success state is rendered first.
    """

    def __init__(self) -> None:
        self.target: str | None = None
        self.delay_seconds: int = 0
        self.calls = 0

    def navigate(self, *, target: str, delay_seconds: int) -> None:
        self.target = target
        self.delay_seconds = max(int(delay_seconds), 0)
        self.calls += 1

    @property
    def pending(self) -> bool:
        return self.target is not None
