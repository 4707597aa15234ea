"""Rewrite foreign-scheme gene identifiers into canonical GIDs.

KEGG gene identifiers carry an organism code prefix (``lma:LMJF_11_0100``)
and often a legacy naming scheme that differs from the one EuPathDB uses
(``LmjF.11.0100``). Normalization is dispatched through a registry of
(pattern, strategy) rules keyed by organism code, so support for a new
organism is added by registering rules rather than editing this module.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Literal

import polars as pl

from eupath_orgdb.errors import UnmappableIdentifier
from eupath_orgdb.gene_mapping.aliases import AliasTable

logger = logging.getLogger(__name__)

AliasPolicy = Literal["none", "prefer", "require"]
Strategy = Callable[[re.Match], str]


def strip_prefix(match: re.Match) -> str:
    """Return the identifier with its organism prefix removed."""
    return match.group("id")


def replace_prefix(replacement: str) -> Strategy:
    """Substitute the organism prefix with a target-scheme prefix."""
    def _strategy(match: re.Match) -> str:
        return replacement + match.group("id")
    return _strategy


def rewrite_separators(old: str = "_", new: str = ".") -> Strategy:
    """Strip the prefix and rewrite separator characters."""
    def _strategy(match: re.Match) -> str:
        return match.group("id").replace(old, new)
    return _strategy


def dotted_locus(locus_prefix: str) -> Strategy:
    """Rebuild ``<PREFIX>_<chr>_<num>`` style IDs as ``<locus_prefix>.<chr>.<num>``."""
    def _strategy(match: re.Match) -> str:
        return f"{locus_prefix}.{match.group('id').replace('_', '.')}"
    return _strategy


def template(fmt: str) -> Strategy:
    """Format named pattern groups into a canonical ID."""
    def _strategy(match: re.Match) -> str:
        return fmt.format(**match.groupdict())
    return _strategy


@dataclass(frozen=True)
class NormalizationRule:
    """A pattern and the strategy that rewrites identifiers matching it.

    Attributes:
        code: Organism code the rule is registered under (e.g. 'lma')
        pattern: Compiled regex; must match the whole identifier
        strategy: Callable producing the canonical ID from the match
        alias_policy: How the alias table is consulted for the result:
            'none' (never), 'prefer' (use an alias hit, else the rewritten ID),
            'require' (unmapped unless the alias table has the rewritten ID)
    """
    code: str
    pattern: re.Pattern
    strategy: Strategy
    alias_policy: AliasPolicy = "none"

    def apply(self, identifier: str, aliases: AliasTable | None = None) -> str | None:
        match = self.pattern.fullmatch(identifier)
        if match is None:
            return None

        candidate = self.strategy(match)
        if self.alias_policy == "none":
            return candidate

        hit = aliases.lookup(candidate) if aliases is not None else None
        if hit is not None:
            return hit
        return candidate if self.alias_policy == "prefer" else None


class NormalizerRegistry:
    """Ordered normalization rules per organism code. First match wins."""

    def __init__(self, rules: Iterable[NormalizationRule] = ()):
        self._rules: dict[str, list[NormalizationRule]] = {}
        for rule in rules:
            self._rules.setdefault(rule.code, []).append(rule)

    def register(
        self,
        code: str,
        pattern: str,
        strategy: Strategy,
        alias_policy: AliasPolicy = "none",
    ) -> NormalizationRule:
        """Add a rule for an organism code (after existing rules for that code)."""
        rule = NormalizationRule(
            code=code,
            pattern=re.compile(pattern),
            strategy=strategy,
            alias_policy=alias_policy,
        )
        self._rules.setdefault(code, []).append(rule)
        return rule

    def rules_for(self, code: str) -> list[NormalizationRule]:
        return list(self._rules.get(code, []))

    def codes(self) -> list[str]:
        return sorted(self._rules)

    def copy(self) -> "NormalizerRegistry":
        return NormalizerRegistry(
            rule for rules in self._rules.values() for rule in rules
        )


def default_registry() -> NormalizerRegistry:
    """Rules for the KEGG organisms with EuPathDB counterparts."""
    registry = NormalizerRegistry()

    # T. brucei: KEGG uses legacy GeneDB names, resolved through the alias file
    registry.register("tbr", r"tbr:(?P<id>\S+)", strip_prefix, alias_policy="prefer")

    # T. cruzi (tcr:509463.30 -> TcCLB.509463.30)
    registry.register("tcr", r"tcr:(?P<id>\S+)", replace_prefix("TcCLB."))

    # T. gondii (tgo:TGME49_200010 -> TGME49.200010)
    registry.register("tgo", r"tgo:(?P<id>\S+)", rewrite_separators("_", "."))

    # L. braziliensis (lbz:LBRM_01_0080 -> LbrM.01.0080)
    registry.register("lbz", r"lbz:LBRM_(?P<id>\S+)", dotted_locus("LbrM"))

    # L. major (lma:LMJF_11_0100 -> LmjF.11.0100)
    registry.register("lma", r"lma:LMJF_(?P<id>\S+)", dotted_locus("LmjF"))

    # L. major non-coding (lma:LMJF10_TRNALYS_01 -> LmjF.10.TRNALYS.01)
    registry.register(
        "lma",
        r"lma:LMJF(?P<chromosome>\d{2})_(?P<feature>[^_\s]+)_(?P<index>[^_\s]+)",
        template("LmjF.{chromosome}.{feature}.{index}"),
    )

    return registry


@dataclass
class NormalizationReport:
    """Summary of a batch normalization.

    Attributes:
        total: Number of distinct identifiers normalized
        mapped: Number that produced a canonical GID
        unmapped_ids: Identifiers with no canonical GID
        success_rate: mapped / total (0-1)
    """
    total: int
    mapped: int
    unmapped_ids: list[str] = field(default_factory=list)
    success_rate: float = 0.0

    def __post_init__(self):
        if self.total > 0:
            self.success_rate = self.mapped / self.total


class IdentifierNormalizer:
    """Maps foreign identifiers to canonical GIDs (or None when unmapped).

    Pure with respect to its inputs: the same identifier always yields the
    same result, independent of call order.
    """

    def __init__(
        self,
        registry: NormalizerRegistry | None = None,
        aliases: AliasTable | None = None,
    ):
        self.registry = registry or default_registry()
        self.aliases = aliases

    def normalize(self, identifier: str) -> str | None:
        """Return the canonical GID for an identifier, or None if unmapped."""
        code = identifier.split(":", 1)[0] if ":" in identifier else ""
        for rule in self.registry.rules_for(code):
            if rule.pattern.fullmatch(identifier):
                result = rule.apply(identifier, self.aliases)
                if result is None:
                    logger.debug(f"No alias for identifier: {identifier}")
                return result

        logger.debug(f"Skipping identifier with no matching rule: {identifier}")
        return None

    def normalize_or_raise(self, identifier: str) -> str:
        """Like normalize(), but raise UnmappableIdentifier instead of returning None."""
        result = self.normalize(identifier)
        if result is None:
            raise UnmappableIdentifier(identifier)
        return result

    def normalize_many(
        self,
        identifiers: Iterable[str],
    ) -> tuple[dict[str, str | None], NormalizationReport]:
        """Normalize a batch of identifiers.

        Returns:
            Tuple of (mapping, report)
            - mapping: distinct input identifier -> canonical GID or None
            - report: summary counts and unmapped identifiers
        """
        mapping: dict[str, str | None] = {}
        for identifier in identifiers:
            if identifier not in mapping:
                mapping[identifier] = self.normalize(identifier)

        unmapped = [i for i, gid in mapping.items() if gid is None]
        report = NormalizationReport(
            total=len(mapping),
            mapped=len(mapping) - len(unmapped),
            unmapped_ids=unmapped,
        )

        if unmapped:
            logger.warning(
                f"{len(unmapped)}/{report.total} identifiers could not be normalized "
                f"(first 5: {unmapped[:5]})"
            )
        logger.info(
            f"Normalized {report.mapped}/{report.total} identifiers "
            f"({report.success_rate:.1%})"
        )

        return mapping, report

    def normalize_frame(
        self,
        df: pl.DataFrame,
        column: str,
        target: str = "GID",
    ) -> tuple[pl.DataFrame, NormalizationReport]:
        """Replace a column of foreign IDs with canonical GIDs.

        Rows whose identifier cannot be normalized are dropped. The target
        column is placed first and the source column removed.
        """
        identifiers = df.get_column(column).drop_nulls().to_list()
        mapping, report = self.normalize_many(identifiers)

        rest = [c for c in df.columns if c != column]
        if not mapping:
            empty = df.clear().with_columns(pl.lit(None, dtype=pl.Utf8).alias(target))
            return empty.select([target, *rest]), report

        result = (
            df.with_columns(
                pl.col(column)
                .replace_strict(mapping, default=None, return_dtype=pl.Utf8)
                .alias(target)
            )
            .filter(pl.col(target).is_not_null())
            .select([target, *rest])
        )
        return result, report
