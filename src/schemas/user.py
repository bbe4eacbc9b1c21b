"""User directory record used during authentication."""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class UserDetails:
    """
    Lightweight user representation returned by the user directory.

    Just the fields needed to decide whether a token owner may authenticate
    and which authorities the resulting principal carries.
    """

    id: int
    username: str
    enabled: bool
    display_name: str | None = None
    authorities: frozenset[str] = field(default_factory=frozenset)
