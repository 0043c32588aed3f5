"""
AI enrichment of incident reports.

Stage 1 writes a short public summary from the report text alone. After the
author approves (or edits) it, stage 2 sends the text and every stored image
to the language model and asks for a forensic narrative followed by a JSON
evidence block.

Language-model failures never fail a stage: stage 1 falls back to the
author's own description and stage 2 to a placeholder narrative, and both
still advance the AI report's status.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

import repositories.db_models as db_models
from models.ai_status import AIReportStatus, advance
from models.exceptions import UpstreamDegradedException
from services.llm_client import InlineImage, LanguageModelClient
from services.storage_service import ObjectStorage

EVIDENCE_SENTINEL = "###EVIDENCE_JSON###"
FULL_REPORT_PLACEHOLDER = "AI could not generate full report"

SUMMARY_SYSTEM_PROMPT = (
    "You summarise citizen crime and incident reports for a public feed. "
    "Write a neutral, factual summary of at most 3 sentences. "
    "Do not speculate, do not name or describe private individuals, "
    "and do not mention images. Return only the summary text."
)

FULL_REPORT_SYSTEM_PROMPT = (
    "You are a forensic analyst preparing an incident report for law "
    "enforcement from a citizen submission and its photos.\n"
    "Output exactly two parts and nothing else:\n"
    "1. One paragraph of plain narrative describing the incident and what the "
    "images show. No headings, no markdown, no labels.\n"
    f"2. On its own line the marker {EVIDENCE_SENTINEL} followed by one strict "
    "JSON object with exactly these keys: "
    '"weapons" (array of strings), "vehicleTypes" (array of strings), '
    '"licensePlates" (array of strings), "suspectsCount" (integer or null), '
    '"facesDetected" (integer or null), "ocrText" (string or null), '
    '"confidenceScore" (number between 0 and 1).\n'
    "Use empty arrays and null when something cannot be determined."
)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


class ExtractedEvidence(BaseModel):
    """Structured evidence block of a stage-2 response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    weapons: List[str] = Field(default_factory=list)
    vehicle_types: List[str] = Field(default_factory=list, alias="vehicleTypes")
    license_plates: List[str] = Field(default_factory=list, alias="licensePlates")
    suspects_count: Optional[int] = Field(default=None, alias="suspectsCount")
    faces_detected: Optional[int] = Field(default=None, alias="facesDetected")
    ocr_text: Optional[str] = Field(default=None, alias="ocrText")
    confidence_score: Optional[float] = Field(default=None, alias="confidenceScore")

    @field_validator("weapons", "vehicle_types", "license_plates", mode="before")
    @classmethod
    def coerce_string_list(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return [str(item) for item in v if item is not None and str(item).strip()]

    @field_validator("confidence_score")
    @classmethod
    def clamp_confidence(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return None
        return min(1.0, max(0.0, v))


@dataclass(frozen=True)
class ParsedFullReport:
    narrative: str
    evidence: Optional[ExtractedEvidence]


def _parse_evidence(candidate: str) -> Optional[ExtractedEvidence]:
    try:
        data = json.loads(candidate)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return ExtractedEvidence.model_validate(data)
    except ValidationError:
        return None


def parse_full_report(text: str) -> ParsedFullReport:
    """
    Split a stage-2 response into narrative and evidence.

    The evidence block is looked up after the sentinel marker when present.
    Otherwise the trailing ``{...}`` block is used: the widest candidate
    (from the first opening brace) is tried first, then each later opening
    brace, so a stray brace inside the narrative does not hide valid JSON.

    Args:
        text: Raw language-model output

    Returns:
        The narrative and the evidence, or the whole response (fences and
        all) and None when no valid evidence block is found
    """
    cleaned = _CODE_FENCE.sub("", text).strip()

    if EVIDENCE_SENTINEL in cleaned:
        narrative, _, tail = cleaned.partition(EVIDENCE_SENTINEL)
        evidence = _parse_evidence(tail.strip())
        if evidence is not None:
            return ParsedFullReport(narrative.strip(), evidence)
        return ParsedFullReport(text.strip(), None)

    if not cleaned.endswith("}"):
        return ParsedFullReport(text.strip(), None)

    for match in re.finditer(r"\{", cleaned):
        start = match.start()
        evidence = _parse_evidence(cleaned[start:])
        if evidence is not None:
            return ParsedFullReport(cleaned[:start].strip(), evidence)

    return ParsedFullReport(text.strip(), None)


class EnrichmentService:
    """Runs the two AI stages against a report's AI sub-aggregate."""

    @staticmethod
    def build_summary_prompt(report: db_models.Report) -> str:
        return (
            f"Category: {report.category}\n"
            f"Date: {report.incident_date}\n"
            f"Time: {report.incident_time}\n"
            f"Location: {report.location_text}\n"
            f"Description: {report.incident_description or 'Not provided'}"
        )

    @staticmethod
    def build_full_report_prompt(report: db_models.Report, image_count: int) -> str:
        summary = report.ai_report.short_summary if report.ai_report else None
        return (
            f"{EnrichmentService.build_summary_prompt(report)}\n"
            f"Approved summary: {summary or 'Not provided'}\n"
            f"Coordinates: {report.latitude}, {report.longitude}\n"
            f"Attached images: {image_count}"
        )

    @staticmethod
    async def generate_summary(
        report: db_models.Report, llm: LanguageModelClient
    ) -> str:
        """
        Stage 1: write the short summary and move to awaiting approval.

        Mutates ``report.ai_report`` in place; the caller persists it.

        Args:
            report: Report whose AI report is in ``processing_summary``
            llm: Language-model client

        Returns:
            The stored summary (the raw description if the model failed)
        """
        ai_report = report.ai_report
        fallback = report.incident_description or ""

        try:
            summary = await llm.complete(
                SUMMARY_SYSTEM_PROMPT, EnrichmentService.build_summary_prompt(report)
            )
        except UpstreamDegradedException as e:
            logger.warning(
                f"Summary generation failed for report {report.id}, "
                f"using author description: {e.message}"
            )
            summary = fallback
        except Exception:
            logger.exception(
                f"Unexpected language model error for report {report.id}, "
                "using author description"
            )
            summary = fallback

        ai_report.short_summary = summary.strip() or fallback
        ai_report.status = advance(
            ai_report.status, AIReportStatus.AWAITING_USER_APPROVAL
        )
        return ai_report.short_summary

    @staticmethod
    async def _collect_images(
        report: db_models.Report, storage: ObjectStorage
    ) -> list[InlineImage]:
        images: list[InlineImage] = []
        for image in report.images:
            try:
                downloaded = await storage.download(image.url)
            except Exception as e:
                logger.warning(
                    f"Skipping image {image.public_id} of report {report.id}: {e}"
                )
                continue
            images.append(InlineImage(downloaded.data, downloaded.content_type))
        return images

    @staticmethod
    def apply_evidence(
        ai_report: db_models.AIReport, evidence: Optional[ExtractedEvidence]
    ) -> None:
        """Store evidence fields; a None evidence clears them to empty."""
        evidence = evidence or ExtractedEvidence()
        ai_report.weapons = evidence.weapons
        ai_report.vehicle_types = evidence.vehicle_types
        ai_report.license_plates = evidence.license_plates
        ai_report.suspects_count = evidence.suspects_count
        ai_report.faces_detected = evidence.faces_detected
        ai_report.ocr_text = evidence.ocr_text
        ai_report.confidence_score = evidence.confidence_score

    @staticmethod
    async def generate_full_report(
        report: db_models.Report,
        llm: LanguageModelClient,
        storage: ObjectStorage,
    ) -> ParsedFullReport:
        """
        Stage 2: produce the forensic narrative and evidence, then complete.

        Mutates ``report.ai_report`` in place; the caller persists it.

        Args:
            report: Report whose AI report is in ``processing_full_report``
            llm: Language-model client
            storage: Storage holding the report's images

        Returns:
            What was stored
        """
        ai_report = report.ai_report
        images = await EnrichmentService._collect_images(report, storage)
        logger.info(
            f"Generating full report for report {report.id} "
            f"with {len(images)}/{len(report.images)} images"
        )

        try:
            raw = await llm.complete(
                FULL_REPORT_SYSTEM_PROMPT,
                EnrichmentService.build_full_report_prompt(report, len(images)),
                images=images,
            )
            parsed = parse_full_report(raw)
            if parsed.evidence is None:
                logger.warning(
                    f"No evidence block in full report for report {report.id}"
                )
        except UpstreamDegradedException as e:
            logger.warning(
                f"Full report generation failed for report {report.id}: {e.message}"
            )
            parsed = ParsedFullReport(FULL_REPORT_PLACEHOLDER, None)
        except Exception:
            logger.exception(
                f"Unexpected language model error for report {report.id}"
            )
            parsed = ParsedFullReport(FULL_REPORT_PLACEHOLDER, None)

        ai_report.full_report = parsed.narrative
        EnrichmentService.apply_evidence(ai_report, parsed.evidence)
        ai_report.status = advance(ai_report.status, AIReportStatus.COMPLETED)
        return parsed

    @staticmethod
    def mark_failed(ai_report: db_models.AIReport) -> None:
        """Move a non-terminal AI report to ``failed``."""
        ai_report.status = advance(ai_report.status, AIReportStatus.FAILED)
