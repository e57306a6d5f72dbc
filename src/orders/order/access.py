"""Caller identity as handed over by the authentication layer."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Caller:
    """Who is asking, and whether they hold elevated (admin) rights.

    Token decoding happens upstream; by the time a ``Caller`` exists the
    identity has already been verified.
    """

    caller_id: str
    privileged: bool = False

    def __post_init__(self):
        if self.caller_id is None or not str(self.caller_id).strip():
            raise ValueError("caller_id is required")
        object.__setattr__(self, "caller_id", str(self.caller_id))

    def owns(self, owner_id) -> bool:
        return self.caller_id == str(owner_id)

    def can_view(self, owner_id) -> bool:
        return self.privileged or self.owns(owner_id)
