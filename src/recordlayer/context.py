"""Runtime context implementations: clocks and ACL identities."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional

from .abc import AclContext, Clock


class SystemClock(Clock):
    """Wall clock in UTC."""

    def today(self) -> date:
        return self.now().date()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant. Useful for replays and tests."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self.instant = instant

    def today(self) -> date:
        return self.instant.date()

    def now(self) -> datetime:
        return self.instant


class StaticAclContext(AclContext):
    """ACL identity built from a user id and the groups/roles it belongs to.

    The user id always comes first; duplicates are dropped.

    Examples:
        >>> StaticAclContext("john@example.com", "team-a", "*").effective_identity_set()
        ['john@example.com', 'team-a', '*']
    """

    def __init__(self, user_id: str, *groups: str) -> None:
        self.user_id = user_id
        self.groups = groups

    def effective_identity_set(self) -> List[str]:
        ids: List[str] = []
        for value in (self.user_id, *self.groups):
            if value and value not in ids:
                ids.append(value)
        return ids


@dataclass(frozen=True)
class CompileContext:
    """Everything a filter compilation may read besides the filter itself."""

    clock: Clock = field(default_factory=SystemClock)
    acl: Optional[AclContext] = None
