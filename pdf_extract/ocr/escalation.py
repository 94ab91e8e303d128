"""
OCR Escalation Controller

Cheap passes run first on the first two variants. Only when their best output scores
below the profile's acceptance threshold does the controller escalate to the full
variant x pass matrix:

    base-pass -> evaluate -> accept
                          -> intensive-pass -> accept

The globally best-scored candidate wins. Engine failures are not retried.
"""

import logging
from typing import List, Optional, Sequence

from .base import EscalationOutcome, ImageVariant, OCREngine, OCRPassConfig, OcrCandidate
from .config import (
    BASE_PASS_VARIANT_COUNT,
    ProcessingProfile,
    get_base_passes,
    get_intensive_passes,
)
from .text_quality import score_candidate
from ..errors import OcrFailedError
from ..settings import ExtractionSettings

logger = logging.getLogger(__name__)


def select_best(candidates: Sequence[OcrCandidate]) -> Optional[OcrCandidate]:
    """Highest score wins; on ties the earliest candidate is kept"""
    best: Optional[OcrCandidate] = None
    for candidate in candidates:
        if best is None or candidate.score > best.score:
            best = candidate
    return best


def best_quality_score(candidates: Sequence[OcrCandidate]) -> int:
    """Highest unboosted quality score among candidates"""
    return max(candidate.quality_score for candidate in candidates)


class EscalationController:
    """Decides which OCR passes run for a page and which output wins"""

    def __init__(
        self,
        engine: OCREngine,
        settings: Optional[ExtractionSettings] = None
    ):
        """
        Args:
            engine: OCR engine running the passes
            settings: Supplies the per-profile acceptance thresholds (defaults to built-in values)
        """
        self.engine = engine
        self.settings = settings or ExtractionSettings()

    def needs_escalation(self, profile: str, candidates: Sequence[OcrCandidate]) -> bool:
        """
        Whether the base passes should be rejected.

        Compares the best text-only quality score among the base candidates; the
        confidence boost only affects selection.
        """
        if profile == ProcessingProfile.FAST or not candidates:
            return False

        threshold = self.settings.acceptance_threshold_for(profile)
        if threshold is None:
            return False
        return best_quality_score(candidates) < threshold

    def run(self, variants: List[ImageVariant], profile: str, page_number: int) -> EscalationOutcome:
        """
        Run base passes, escalate if needed, and pick the winning candidate.

        Args:
            variants: Image variants in generation order (raw, normalized, ...)
            profile: Processing profile
            page_number: Page number (1-based), for logs and errors

        Returns:
            EscalationOutcome; best is None when no candidate was produced

        Raises:
            OcrFailedError: If any pass fails
        """
        base_variants = variants[:BASE_PASS_VARIANT_COUNT]
        candidates = self._run_passes(base_variants, get_base_passes(profile), page_number)

        best = select_best(candidates)
        if best is None:
            logger.info(f"Page {page_number}: no OCR candidates produced")
            return EscalationOutcome(best=None, candidates=candidates)

        if not self.needs_escalation(profile, candidates):
            logger.info(
                f"Page {page_number}: accepted {best.label} "
                f"(score {best.score}, quality {best.quality_score})"
            )
            return EscalationOutcome(best=best, candidates=candidates)

        logger.info(
            f"Page {page_number}: base passes scored {best_quality_score(candidates)}, "
            f"below {profile} threshold {self.settings.acceptance_threshold_for(profile)}; escalating"
        )
        candidates.extend(self._run_passes(variants, get_intensive_passes(profile), page_number))

        best = select_best(candidates)
        logger.info(
            f"Page {page_number}: selected {best.label} after escalation "
            f"(score {best.score}, {len(candidates)} candidates)"
        )
        return EscalationOutcome(best=best, candidates=candidates, escalated=True)

    def _run_passes(
        self,
        variants: Sequence[ImageVariant],
        passes: Sequence[OCRPassConfig],
        page_number: int
    ) -> List[OcrCandidate]:
        """Run every pass on every variant, variant-major"""
        candidates = []
        for variant in variants:
            for ocr_pass in passes:
                try:
                    result = self.engine.run_pass(variant, ocr_pass)
                except OcrFailedError as e:
                    raise OcrFailedError(
                        f"OCR failed for page {page_number}: {e.message}",
                        page_number=page_number,
                        details=e.details
                    ) from e

                candidate = score_candidate(result.text, result.confidence, variant.label, ocr_pass.name)
                logger.debug(
                    f"Page {page_number}: {candidate.label} score={candidate.score} "
                    f"quality={candidate.quality_score} confidence={result.confidence} "
                    f"time={result.processing_time:.2f}s"
                )
                candidates.append(candidate)
        return candidates
