"""Include/exclude glob rules for the local tree scan.

Patterns are glob patterns matched against root-relative, ``/``-separated
paths:

* a pattern without ``/`` is also matched against the base name, so
  ``*.log`` matches ``logs/app.log``;
* dot-files are matched by ``*`` like any other name;
* leading ``**/`` segments may match zero folders, so ``**/.git*`` also
  matches ``.github`` at the root;
* a trailing ``/**`` also matches the folder itself, so the folder and
  everything below it are excluded.

Precedence caveat: exclude patterns always win. Include patterns are
additive, not restrictive. A path matching an include pattern is kept, and
a path matching no include pattern is kept too. Existing deployments rely
on this, so it must not be turned into a whitelist.
"""

import logging
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDES: list[str] = [
    "**/.git*",
    "**/.git*/**",
    "**/node_modules/**",
]


def _expand_pattern(pattern: str) -> list[str]:
    """Return the fnmatch variants equivalent to one glob pattern."""
    pattern = pattern.strip()
    while pattern.startswith("./"):
        pattern = pattern[2:]

    variants = [pattern]
    stripped = pattern
    while stripped.startswith("**/"):
        stripped = stripped[3:]
        variants.append(stripped)

    for variant in list(variants):
        if variant.endswith("/**") and len(variant) > 3:
            variants.append(variant[:-3])

    return [variant for variant in variants if variant]


@dataclass
class IgnoreRule:
    """A single glob pattern."""

    pattern: str
    _variants: list[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._variants = _expand_pattern(self.pattern)

    def matches(self, relative_path: str) -> bool:
        """Check whether a root-relative path matches this pattern.

        Args:
            relative_path: Path using forward slashes, without leading "./"

        Returns:
            True if the path matches
        """
        base_name = relative_path.rsplit("/", 1)[-1]
        for variant in self._variants:
            if fnmatchcase(relative_path, variant):
                return True
            if "/" not in variant and fnmatchcase(base_name, variant):
                return True
        return False


class IncludeExcludeFilter:
    """Decides which scanned paths make it into the inventory.

    Examples:
        >>> rules = IncludeExcludeFilter(exclude=["*.tmp"])
        >>> rules.should_keep("notes.tmp")
        False
        >>> IncludeExcludeFilter(include=["*.html"]).should_keep("app.js")
        True
    """

    def __init__(
        self,
        include: Optional[list[str]] = None,
        exclude: Optional[list[str]] = None,
    ):
        self.include = [IgnoreRule(p) for p in (include or []) if p.strip()]
        self.exclude = [IgnoreRule(p) for p in (exclude or []) if p.strip()]

    def is_excluded(self, relative_path: str) -> bool:
        return any(rule.matches(relative_path) for rule in self.exclude)

    def is_included(self, relative_path: str) -> bool:
        return any(rule.matches(relative_path) for rule in self.include)

    def should_keep(self, relative_path: str) -> bool:
        """Apply exclude-first precedence to a path.

        Args:
            relative_path: Root-relative path using forward slashes

        Returns:
            False only when an exclude pattern matches
        """
        if self.is_excluded(relative_path):
            logger.debug(f"Excluding (from rules): {relative_path}")
            return False

        if self.include and self.is_included(relative_path):
            return True

        # Not matching an include pattern still keeps the path
        return True
