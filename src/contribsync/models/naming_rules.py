"""Naming ruleset used to canonicalize contributor names."""

from typing import Dict, List

from pydantic import BaseModel, model_validator


class NamingRules(BaseModel):
    """Snapshot of the denylist and equivalence table.

    ``equivalences`` maps an alias to its canonical name. Aliases may chain
    (``"bob" -> "Bob" -> "Robert"``) but must not loop.
    """

    denylist: List[str] = []
    equivalences: Dict[str, str] = {}

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _no_equivalence_cycles(self) -> "NamingRules":
        for alias in self.equivalences:
            seen = {alias}
            name = self.equivalences[alias]
            while name in self.equivalences:
                if name in seen:
                    raise ValueError(f"equivalence cycle through {alias!r}")
                seen.add(name)
                name = self.equivalences[name]
        return self

    def canonical(self, name: str) -> str:
        while name in self.equivalences:
            name = self.equivalences[name]
        return name

    def denies(self, name: str) -> bool:
        return name in self.denylist
