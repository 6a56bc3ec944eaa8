"""Template mutation pipeline composed from focused helpers."""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set

from docx.opc.constants import RELATIONSHIP_TYPE as RT

from .common import (
    DEFAULT_OFFICE_PLACEHOLDER,
    DEFAULT_STYLE,
    DOCX_EXTENSION,
    OFFICE_SUFFIX,
    DataGroup,
    FragmentStyle,
    GroupResult,
    PipelineState,
    safe_filename,
)
from .navigation import DEFAULT_ANCHOR_SPEC, AnchorNavigationMixin, AnchorSpec
from .pattern_rules import PatternRule, build_date_rules, literal_rule, replace_in_paragraph
from .region_builder import format_amount, synthesize_region
from .store import TemplateStore


@dataclass
class MutationConfig:
    """
    Per-batch settings.

    Date substitution and the month-specific cutoff are only active when
    both year and month are set; otherwise the notice uses the default
    month wording and the 15th.
    """
    year: Optional[int] = None
    month: Optional[int] = None
    office_placeholder: str = DEFAULT_OFFICE_PLACEHOLDER
    anchor_spec: AnchorSpec = DEFAULT_ANCHOR_SPEC
    style: FragmentStyle = DEFAULT_STYLE
    extension: str = DOCX_EXTENSION

    def __post_init__(self):
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")
        if self.year is not None and not 1 <= self.year <= 9999:
            raise ValueError(f"Year out of range: {self.year}")

    @property
    def date_enabled(self) -> bool:
        return self.year is not None and self.month is not None


@dataclass
class BatchReport:
    results: List[GroupResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[GroupResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[GroupResult]:
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        return f"Completed: {len(self.succeeded)} succeeded, {len(self.failed)} failed"


class TemplateMutator(AnchorNavigationMixin):
        def __init__(self, store: TemplateStore, output_dir: str,
                     config: MutationConfig = None, dry_run: bool = False,
                     verbose: bool = False):
            self.store = store
            self.output_dir = Path(output_dir)
            self.config = config or MutationConfig()
            self.dry_run = dry_run
            self.verbose = verbose

            # Output file names already taken in this batch
            self._claimed_outputs: Set[str] = set()

        # ------------------------------------------------------------
        # Stages
        # ------------------------------------------------------------

        def _build_rules(self, group: DataGroup) -> List[PatternRule]:
            rules = [literal_rule(self.config.office_placeholder, f"{group.name}{OFFICE_SUFFIX}",
                                  name='office')]
            if self.config.date_enabled:
                rules.extend(build_date_rules(self.config.year, self.config.month))
            return rules

        def _iter_story_roots(self, document):
            """Body element followed by every header/footer part root"""
            yield document.element.body
            seen = set()
            for rel in document.part.rels.values():
                if rel.is_external or rel.reltype not in (RT.HEADER, RT.FOOTER):
                    continue
                part = rel.target_part
                if id(part) in seen:
                    continue
                seen.add(id(part))
                yield part.element

        def _apply_rules(self, document, rules: List[PatternRule]) -> int:
            """Run pattern rules over every paragraph; returns paragraphs changed"""
            changed = 0
            for root in self._iter_story_roots(document):
                for para in self._xpath(root, './/w:p'):
                    if replace_in_paragraph(para, rules):
                        changed += 1
            return changed

        def _output_path(self, group: DataGroup) -> Path:
            return self.output_dir / f"{safe_filename(group.name)}.{self.config.extension}"

        def _claim_output(self, path: Path):
            key = path.name.lower()
            if key in self._claimed_outputs:
                raise ValueError(f"Output file name collides with an earlier group: {path.name}")
            self._claimed_outputs.add(key)

        # ------------------------------------------------------------
        # Public API
        # ------------------------------------------------------------

        def generate(self, group: DataGroup) -> GroupResult:
            """
            Produce one group's document: copy -> replace -> splice -> persist.

            Any failure is converted into a failed GroupResult; nothing is
            written for that group and the caller moves on to the next one.
            """
            stage = None
            result = GroupResult(group_name=group.name, success=False, state=PipelineState.FAILED)
            try:
                output_path = self._output_path(group)
                self._claim_output(output_path)

                document = self.store.fresh_copy()
                body = document.element.body
                self._require_blocks(body)
                stage = PipelineState.LOADED

                result.rules_applied = self._apply_rules(document, self._build_rules(group))
                stage = PipelineState.REPLACED

                region = self._locate_anchor_region(body, self.config.anchor_spec)
                notice_month = self.config.month if self.config.date_enabled else None
                plan = synthesize_region(group.rows, notice_month, self.config.style)
                self._replace_region(body, region, plan.blocks)
                result.item_count = len(plan.items)
                result.total = plan.total
                result.warnings = list(plan.warnings)
                stage = PipelineState.SPLICED

                if region.relaxed:
                    print(f"  Warning: closing notice not found, used first totals line "
                          f"(block {region.end}) as end marker", file=sys.stderr)

                if self.dry_run:
                    print(f"  [DRY RUN] Would save to: {output_path}")
                else:
                    self.store.save(document, output_path)
                stage = PipelineState.PERSISTED

                result.success = True
                result.state = PipelineState.PERSISTED
                result.output_path = output_path
            except Exception as e:
                result.error_message = str(e) or type(e).__name__
            result.stage = stage
            return result

        def run_batch(self, groups: Iterable[DataGroup]) -> BatchReport:
            """Generate every group in order; one group's failure never stops the batch"""
            groups = list(groups)
            report = BatchReport()
            for i, group in enumerate(groups):
                print(f"[{i+1}/{len(groups)}] {group.name}")
                if self.verbose:
                    print(f"  Title: {group.display_title}")
                    print(f"  Rows: {len(group.rows)}")
                    if self.config.date_enabled:
                        print(f"  Month: {self.config.year}年{self.config.month}月")

                result = self.generate(group)
                report.results.append(result)

                if result.success:
                    if self.verbose:
                        print(f"  Items: {result.item_count}, total: {format_amount(result.total)}, "
                              f"paragraphs rewritten: {result.rules_applied}")
                    print(f"  [✓] {result.output_path}")
                    if result.warnings:
                        print(f"  Warning: {len(result.warnings)} amount(s) could not be parsed and were counted as 0",
                              file=sys.stderr)
                else:
                    print(f"  [✗] {result.error_message}")
            return report
