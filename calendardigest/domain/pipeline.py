"""Digest processing pipeline for calendardigest.

The report is produced by running a DigestContext through a sequence of
stages: load, normalize, expand, group, format. Each stage reports its
outcome in a StageResult; the pipeline stops at the first stage that fails.

Usage:
    context = DigestContext(paths=["team.ics"], window=window, report_timezone=tz)
    pipeline = build_digest_pipeline(context)
    result = pipeline.process(context)
    if result.success:
        print("\\n".join(context.lines))
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Any, Optional, Protocol

from calendardigest.calendar.digest_models import DigestEvent, Occurrence, Span
from calendardigest.calendar.event_normalizer import EventNormalizer
from calendardigest.calendar.ics_loader import LoadedDocument, load_document
from calendardigest.calendar.occurrence_expander import RecurrenceExpander
from calendardigest.digest_exceptions import DigestError, FieldParseError, LoadError
from calendardigest.domain.report_formatter import (
    DEFAULT_CONTENT_WIDTH,
    DEFAULT_LABEL_WIDTH,
    ReportFormatter,
)
from calendardigest.domain.report_grouper import GroupedReport, ReportGrouper
from calendardigest.domain.window import WindowIntersector

logger = logging.getLogger(__name__)


@dataclass
class DigestContext:
    """State passed between pipeline stages."""

    window: Span
    report_timezone: tzinfo

    # Input
    paths: list[str] = field(default_factory=list)
    on_error: str = "abort"
    label_width: int = DEFAULT_LABEL_WIDTH
    content_width: int = DEFAULT_CONTENT_WIDTH

    # Processing state (modified by stages)
    documents: list[LoadedDocument] = field(default_factory=list)
    events: list[DigestEvent] = field(default_factory=list)
    occurrences: list[Occurrence] = field(default_factory=list)
    report: Optional[GroupedReport] = None
    lines: list[str] = field(default_factory=list)

    # Bookkeeping
    failed_sources: list[str] = field(default_factory=list)
    skipped_events: int = 0

    @property
    def skip_errors(self) -> bool:
        return self.on_error == "skip"


@dataclass
class StageResult:
    """Outcome of a stage or of a complete pipeline run."""

    success: bool = True
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    # Statistics
    items_in: int = 0
    items_out: int = 0
    stage_name: str = ""

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)
        logger.warning("[%s] %s", self.stage_name, message)

    def add_error(self, message: str) -> None:
        """Add an error message and mark as failed."""
        self.errors.append(message)
        self.success = False
        logger.error("[%s] %s", self.stage_name, message)

    def add_skipped_error(self, message: str) -> None:
        """Record an error that was skipped under the "skip" policy."""
        self.errors.append(message)
        logger.error("[%s] %s (skipped)", self.stage_name, message)


class DigestStage(Protocol):
    """A single stage of the digest pipeline."""

    @property
    def name(self) -> str: ...

    def process(self, context: DigestContext) -> StageResult: ...


class LoadStage:
    """Loads every document named in the context, in order."""

    def __init__(self, loader: Callable[[str | Path], LoadedDocument] = load_document):
        self._loader = loader

    @property
    def name(self) -> str:
        return "Load"

    def process(self, context: DigestContext) -> StageResult:
        result = StageResult(stage_name=self.name, items_in=len(context.paths))
        for path in context.paths:
            try:
                document = self._loader(path)
            except LoadError as exc:
                if not context.skip_errors:
                    result.add_error(str(exc))
                    return result
                context.failed_sources.append(exc.source)
                result.add_skipped_error(str(exc))
                continue
            context.documents.append(document)
            logger.info("Loaded %d events from %s", document.event_count, document.source)

        result.items_out = len(context.documents)
        return result


class NormalizeStage:
    """Turns raw property bags into DigestEvent records."""

    def __init__(self, normalizer: EventNormalizer):
        self._normalizer = normalizer

    @property
    def name(self) -> str:
        return "Normalize"

    def process(self, context: DigestContext) -> StageResult:
        result = StageResult(stage_name=self.name)
        unnamed = 0
        for document in context.documents:
            for raw in document.events:
                result.items_in += 1
                try:
                    event = self._normalizer.normalize(raw)
                except FieldParseError as exc:
                    if not context.skip_errors:
                        result.add_error(str(exc))
                        return result
                    context.skipped_events += 1
                    result.add_warning(f"Skipping event: {exc}")
                    continue
                if event is None:
                    unnamed += 1
                    continue
                context.events.append(event)

        result.items_out = len(context.events)
        result.metadata["events_without_summary"] = unnamed
        return result


class ExpandStage:
    """Expands events and keeps the occurrences inside the window."""

    def __init__(self, expander: RecurrenceExpander, intersector: WindowIntersector):
        self._expander = expander
        self._intersector = intersector

    @property
    def name(self) -> str:
        return "Expand"

    def process(self, context: DigestContext) -> StageResult:
        result = StageResult(stage_name=self.name, items_in=len(context.events))
        for event in context.events:
            try:
                occurrence_set = self._expander.expand(event)
            except FieldParseError as exc:
                if not context.skip_errors:
                    result.add_error(str(exc))
                    return result
                context.skipped_events += 1
                result.add_warning(f"Skipping event: {exc}")
                continue
            context.occurrences.extend(self._intersector.occurrences(event, occurrence_set))

        result.items_out = len(context.occurrences)
        return result


class GroupStage:
    """Buckets occurrences by day and orders them."""

    def __init__(self, grouper: ReportGrouper):
        self._grouper = grouper

    @property
    def name(self) -> str:
        return "Group"

    def process(self, context: DigestContext) -> StageResult:
        result = StageResult(stage_name=self.name, items_in=len(context.occurrences))
        context.report = self._grouper.group(context.occurrences)
        result.items_out = len(context.report)
        result.metadata["days"] = len(context.report.days)
        return result


class FormatStage:
    """Renders the grouped report into output lines."""

    def __init__(self, formatter: ReportFormatter):
        self._formatter = formatter

    @property
    def name(self) -> str:
        return "Format"

    def process(self, context: DigestContext) -> StageResult:
        result = StageResult(stage_name=self.name)
        if context.report is None:
            result.add_error("No grouped report to format")
            return result
        result.items_in = len(context.report)
        context.lines = list(self._formatter.render(context.report))
        result.items_out = len(context.lines)
        return result


class DigestPipeline:
    """Runs the stages of the digest in sequence."""

    def __init__(self) -> None:
        self.stages: list[DigestStage] = []

    def add_stage(self, stage: DigestStage) -> DigestPipeline:
        """Add a processing stage to the pipeline (builder pattern)."""
        self.stages.append(stage)
        logger.debug("Added stage to pipeline: %s", stage.name)
        return self

    def process(self, context: DigestContext) -> StageResult:
        """Execute all stages in sequence.

        Returns:
            Aggregated result; ``success`` is False if a stage failed
        """
        aggregated = StageResult(stage_name="Pipeline")

        for i, stage in enumerate(self.stages, start=1):
            logger.debug("Executing stage %d/%d: %s", i, len(self.stages), stage.name)
            try:
                stage_result = stage.process(context)
            except DigestError as exc:
                aggregated.add_error(f"Stage {stage.name} raised exception: {exc}")
                logger.debug("Stage %s failed", stage.name, exc_info=True)
                return aggregated

            logger.debug(
                "Stage %s completed: success=%s, in=%s, out=%s, warnings=%s, errors=%s",
                stage.name,
                stage_result.success,
                stage_result.items_in,
                stage_result.items_out,
                len(stage_result.warnings),
                len(stage_result.errors),
            )

            aggregated.warnings.extend(stage_result.warnings)
            aggregated.errors.extend(stage_result.errors)
            aggregated.metadata.update(stage_result.metadata)

            if not stage_result.success:
                aggregated.success = False
                logger.debug("Pipeline stopped at stage %s", stage.name)
                return aggregated

        aggregated.items_out = len(context.lines)
        logger.info(
            "Digest complete: %d occurrences, %d warnings, %d failed documents",
            len(context.report) if context.report is not None else 0,
            len(aggregated.warnings),
            len(context.failed_sources),
        )
        return aggregated

    def __repr__(self) -> str:
        return f"DigestPipeline(stages={[stage.name for stage in self.stages]})"


def build_digest_pipeline(
    context: DigestContext,
    loader: Callable[[str | Path], LoadedDocument] = load_document,
) -> DigestPipeline:
    """Assemble the standard load → normalize → expand → group → format pipeline."""
    tz = context.report_timezone
    return (
        DigestPipeline()
        .add_stage(LoadStage(loader))
        .add_stage(NormalizeStage(EventNormalizer(tz)))
        .add_stage(ExpandStage(RecurrenceExpander(tz), WindowIntersector(context.window, tz)))
        .add_stage(GroupStage(ReportGrouper(tz)))
        .add_stage(FormatStage(ReportFormatter(tz, context.label_width, context.content_width)))
    )
