from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class TeamIdentity:
    """A team's canonical name plus the short forms people write in pick text."""
    name: str
    aliases: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_name(cls, name: str, extra: Tuple[str, ...] = ()) -> "TeamIdentity":
        # "Los Angeles Lakers" -> {"los angeles lakers", "lakers", "angeles lakers"}
        words = name.split()
        aliases = {name.lower()}
        if len(words) > 1:
            aliases.add(words[-1].lower())
            aliases.add(" ".join(words[-2:]).lower())
        aliases.update(a.lower() for a in extra)
        return cls(name=name, aliases=frozenset(aliases))

    def longest_match(self, text: str) -> int:
        """Length of the longest alias found in `text` on word boundaries (0 if none)."""
        low = text.lower()
        best = 0
        for alias in self.aliases:
            if len(alias) > best and re.search(r"(?<!\w)" + re.escape(alias) + r"(?!\w)", low):
                best = len(alias)
        return best


def matchup(home_team: str, away_team: str) -> Tuple[TeamIdentity, TeamIdentity]:
    """Identities for both sides with any alias they share removed ("New York" vs "New York")."""
    home = TeamIdentity.from_name(home_team)
    away = TeamIdentity.from_name(away_team)
    shared = home.aliases & away.aliases
    if not shared:
        return home, away
    return (
        TeamIdentity(home.name, home.aliases - shared),
        TeamIdentity(away.name, away.aliases - shared),
    )


def resolve_team_side(text: str, home_team: str, away_team: str) -> Optional[str]:
    """'home' / 'away' for the team named in `text`; None when neither or both match equally."""
    if not text:
        return None
    home, away = matchup(home_team, away_team)
    h, a = home.longest_match(text), away.longest_match(text)
    if h == a:
        return None
    return "home" if h > a else "away"


def resolve_total_side(text: str) -> Optional[str]:
    up = (text or "").upper()
    if "OVER" in up:
        return "over"
    if "UNDER" in up:
        return "under"
    return None
