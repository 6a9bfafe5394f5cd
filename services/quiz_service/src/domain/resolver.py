"""
CellScan Quiz Service - Risk Band Resolution.
Maps a total score onto the configured risk bands.
"""
from __future__ import annotations
from typing import Sequence
import structlog

from cellscan_common.exceptions import DataIntegrityError
from ..config import ResolverSettings
from ..schemas import IntegrityWarning, RiskBand
from .models import Resolution

logger = structlog.get_logger(__name__)


def _ordered(bands: Sequence[RiskBand]) -> list[RiskBand]:
    return sorted(bands, key=lambda b: (b.min_score, b.max_score))


class RiskResolver:
    """Resolves scores to bands; overlaps are settled by the lowest min_score."""

    def __init__(self, settings: ResolverSettings | None = None) -> None:
        self._settings = settings or ResolverSettings()

    def resolve(self, total_score: int, bands: Sequence[RiskBand]) -> Resolution:
        """Find the band containing ``total_score``; ``band`` is None when none does."""
        matches = [band for band in _ordered(bands) if band.contains(total_score)]
        if not matches:
            logger.info("risk_band_not_found", score=total_score, bands=len(bands))
            return Resolution()
        resolution = Resolution(band=matches[0])
        if len(matches) > 1:
            labels = [band.label for band in matches]
            resolution.warnings.append(IntegrityWarning(
                code="overlapping_bands",
                message=f"score {total_score} matches {len(matches)} bands; using '{matches[0].label}'",
                labels=labels))
            logger.warning("risk_band_overlap", score=total_score, matched=labels, chosen=matches[0].label)
        return resolution

    def check_bands(self, bands: Sequence[RiskBand],
                    score_range: tuple[int, int] | None = None) -> list[IntegrityWarning]:
        """List overlaps between bands and integer scores no band covers."""
        issues: list[IntegrityWarning] = []
        ordered = _ordered(bands)
        for band in ordered:
            if band.min_score > band.max_score:
                issues.append(IntegrityWarning(code="inverted_band", labels=[band.label],
                                               message=f"band '{band.label}' has min_score above max_score"))
        # ``reach`` is the band extending furthest among those already seen.
        reach = ordered[0] if ordered else None
        for current in ordered[1:]:
            if current.min_score <= reach.max_score:
                issues.append(IntegrityWarning(
                    code="overlapping_bands", labels=[reach.label, current.label],
                    message=f"bands '{reach.label}' and '{current.label}' overlap"))
            elif current.min_score > reach.max_score + 1:
                issues.append(IntegrityWarning(
                    code="coverage_gap", labels=[reach.label, current.label],
                    message=f"scores {reach.max_score + 1}..{current.min_score - 1} have no band"))
            if current.max_score > reach.max_score:
                reach = current
        if score_range is not None and self._settings.check_coverage:
            issues.extend(self._range_gaps(ordered, score_range))
        return issues

    @staticmethod
    def _range_gaps(ordered: list[RiskBand], score_range: tuple[int, int]) -> list[IntegrityWarning]:
        low, high = score_range
        if not ordered:
            return [IntegrityWarning(code="coverage_gap", message=f"scores {low}..{high} have no band")]
        gaps: list[IntegrityWarning] = []
        lowest = ordered[0].min_score
        highest = max(band.max_score for band in ordered)
        if low < lowest:
            gaps.append(IntegrityWarning(code="coverage_gap", labels=[ordered[0].label],
                                         message=f"scores {low}..{lowest - 1} have no band"))
        if high > highest:
            gaps.append(IntegrityWarning(code="coverage_gap", labels=[ordered[-1].label],
                                         message=f"scores {highest + 1}..{high} have no band"))
        return gaps

    def validate(self, bands: Sequence[RiskBand],
                 score_range: tuple[int, int] | None = None) -> list[IntegrityWarning]:
        """Check bands up front.

        Inverted bands always raise. Overlaps and gaps raise in strict mode and
        are returned as warnings otherwise.
        """
        issues = self.check_bands(bands, score_range)
        if not issues:
            return []
        inverted = any(issue.code == "inverted_band" for issue in issues)
        if inverted or self._settings.strict_integrity:
            raise DataIntegrityError(f"Risk bands failed validation ({len(issues)} issues)",
                                     issues=[issue.message for issue in issues])
        logger.warning("risk_band_integrity_issues", count=len(issues),
                       codes=sorted({issue.code for issue in issues}))
        return issues
