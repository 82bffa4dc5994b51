"""
Argument Set

Ordered, append-only command-line tokens plus the registry used to reject
conflicting options while a scanner is being configured.
"""

from enum import Enum
from typing import Dict, Iterator, List, Optional

from ..core.exceptions import OptionConflictError, ScannerStateError


class OptionCategory(str, Enum):
    """Groups of options of which at most one may be selected."""

    SCAN_TECHNIQUE = "scan technique"
    VERSION_INTENSITY = "version intensity"
    DNS_RESOLUTION = "DNS resolution"
    TIMING_TEMPLATE = "timing template"
    STYLESHEET = "stylesheet"
    PRIVILEGE = "privilege level"
    PACKET_LAYER = "raw packet layer"


class ArgumentSet:
    """
    Accumulates scanner arguments in application order.

    Boolean flags are idempotent: adding one that is already present is a
    no-op. Value-bearing flags and bare targets may only appear once, and a
    category may only be claimed by a single flag. Once frozen the set
    rejects every mutation.
    """

    def __init__(self) -> None:
        self._tokens: List[str] = []
        self._flags: Dict[str, List[str]] = {}
        self._categories: Dict[OptionCategory, str] = {}
        self._targets: List[str] = []
        self._frozen = False

    def add_flag(self, flag: str, category: Optional[OptionCategory] = None) -> None:
        """Append a boolean flag such as ``-sS``."""
        self._check_mutable()
        if flag in self._flags:
            return
        self._claim(flag, category)
        self._flags[flag] = []
        self._tokens.append(flag)

    def add_option(
        self, flag: str, *values: str, category: Optional[OptionCategory] = None
    ) -> None:
        """Append a flag followed by its value tokens, e.g. ``-p 80,443``."""
        self._check_mutable()
        self._check_single_use(flag)
        self._claim(flag, category)
        self._flags[flag] = list(values)
        self._tokens.append(flag)
        self._tokens.extend(values)

    def add_compound(
        self, flag: str, value: str = "", separator: str = "",
        category: Optional[OptionCategory] = None,
    ) -> None:
        """
        Append a single token made of a flag and its value.

        Used for options whose value is glued to the flag, like ``-PS443``
        or ``--script-args=user=foo``.
        """
        self._check_mutable()
        self._check_single_use(flag)
        self._claim(flag, category)
        self._flags[flag] = [value] if value else []
        self._tokens.append(f"{flag}{separator}{value}" if value else flag)

    def add_target(self, target: str) -> None:
        """Append a bare target specification."""
        self._check_mutable()
        if target in self._targets:
            raise OptionConflictError(
                f"target {target!r} was specified more than once",
                {"target": target},
            )
        self._targets.append(target)
        self._tokens.append(target)

    def add_raw(self, *tokens: str) -> None:
        """Append tokens verbatim without any conflict checks."""
        self._check_mutable()
        self._tokens.extend(tokens)

    def freeze(self) -> None:
        """Make the set read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def targets(self) -> List[str]:
        return list(self._targets)

    @property
    def tokens(self) -> List[str]:
        return list(self._tokens)

    def category_owner(self, category: OptionCategory) -> Optional[str]:
        """Return the flag that claimed a category, if any."""
        return self._categories.get(category)

    def values(self, flag: str) -> Optional[List[str]]:
        """Return the values recorded for a flag, or None if it is absent."""
        values = self._flags.get(flag)
        return list(values) if values is not None else None

    def __contains__(self, flag: object) -> bool:
        return flag in self._flags

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ArgumentSet):
            return self._tokens == other._tokens
        if isinstance(other, list):
            return self._tokens == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ArgumentSet({self._tokens!r})"

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ScannerStateError("arguments cannot be changed once a scan has started")

    def _check_single_use(self, flag: str) -> None:
        if flag in self._flags:
            raise OptionConflictError(
                f"option {flag} was specified more than once", {"flag": flag}
            )

    def _claim(self, flag: str, category: Optional[OptionCategory]) -> None:
        if category is None:
            return
        owner = self._categories.get(category)
        if owner is not None and owner != flag:
            raise OptionConflictError(
                f"cannot combine {flag} with {owner}: only one {category.value} "
                f"option may be selected",
                {"category": category.value, "existing": owner, "requested": flag},
            )
        self._categories[category] = flag
