#!/usr/bin/env python3
"""
ABOUTME: Generates one budget approval document per workbook sheet
ABOUTME: Rewrites the .docx template per office, or builds plain budget tables (--mode table)
"""

import argparse
import os
import sys
from datetime import date
from pathlib import Path
from typing import List

from budget_table_doc import write_table_document
from budget_workbook import read_workbook
from docx_template.common import (
    DEFAULT_OFFICE_PLACEHOLDER,
    DOCX_EXTENSION,
    DataGroup,
    GroupResult,
    PipelineState,
    format_text_preview,
    safe_filename,
)
from docx_template.mutator import BatchReport, MutationConfig, TemplateMutator
from docx_template.navigation import DEFAULT_ANCHOR_SPEC, load_anchor_spec
from docx_template.store import TemplateStore


DEFAULT_TEMPLATE = os.path.join('data', '日常费用预算财务.docx')
DEFAULT_OUTPUT_DIR = 'output'


def run_table_batch(groups: List[DataGroup], output_dir: Path, dry_run: bool = False) -> BatchReport:
    """Write a standalone budget table document per group"""
    report = BatchReport()
    for i, group in enumerate(groups):
        print(f"[{i+1}/{len(groups)}] {group.name}")
        output_path = Path(output_dir) / f"{safe_filename(group.name)}.{DOCX_EXTENSION}"
        result = GroupResult(group_name=group.name, success=False, state=PipelineState.FAILED)
        try:
            if dry_run:
                print(f"  [DRY RUN] Would save to: {output_path}")
            else:
                write_table_document(group, output_path)
            result.success = True
            result.state = PipelineState.PERSISTED
            result.stage = PipelineState.PERSISTED
            result.output_path = output_path
            print(f"  [✓] {output_path}")
        except Exception as e:
            result.error_message = str(e)
            print(f"  [✗] {result.error_message}")
        report.results.append(result)
    return report


def print_report(report: BatchReport, output_dir: Path):
    if report.failed:
        print("\nFailed groups:")
        for r in report.failed:
            print(f"  - [{r.group_name}] {format_text_preview(r.error_message or '', 80)}")

    warned = [r for r in report.succeeded if r.warnings]
    if warned:
        print("\nGroups with unparseable amounts (counted as 0):")
        for r in warned:
            print(f"  - [{r.group_name}] {len(r.warnings)} value(s)")

    print("-" * 50)
    print(report.summary())
    print(f"Output directory: {Path(output_dir).resolve()}")


def build_parser() -> argparse.ArgumentParser:
    today = date.today()
    parser = argparse.ArgumentParser(
        description="Generate budget approval documents from an office budget workbook"
    )
    parser.add_argument('workbook', help='Budget workbook (.xlsx), one sheet per office')
    parser.add_argument('--template',
                        default=os.getenv('BUDGET_DOCGEN_TEMPLATE', DEFAULT_TEMPLATE),
                        help=f'Word template (.docx) (default: $BUDGET_DOCGEN_TEMPLATE or {DEFAULT_TEMPLATE})')
    parser.add_argument('-o', '--output-dir',
                        default=os.getenv('BUDGET_DOCGEN_OUTPUT_DIR', DEFAULT_OUTPUT_DIR),
                        help=f'Output directory (default: $BUDGET_DOCGEN_OUTPUT_DIR or {DEFAULT_OUTPUT_DIR})')
    parser.add_argument('--year', type=int, default=today.year,
                        help=f'Target year (default: {today.year})')
    parser.add_argument('--month', type=int, default=today.month,
                        help=f'Target month 1-12 (default: {today.month})')
    parser.add_argument('--no-date', action='store_true',
                        help='Keep template dates; closing notice uses default month wording and the 15th')
    parser.add_argument('--office-placeholder', default=DEFAULT_OFFICE_PLACEHOLDER,
                        help=f'Office name in the template replaced per sheet (default: {DEFAULT_OFFICE_PLACEHOLDER})')
    parser.add_argument('--anchors',
                        help='JSON file with region marker phrases (start/total/currency/closing)')
    parser.add_argument('--mode', choices=['template', 'table'], default='template',
                        help='template: rewrite the Word template; table: plain budget table (default: template)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Process everything, do not save')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    return parser


def main(argv: List[str] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not 1 <= args.month <= 12:
        parser.error(f"--month must be between 1 and 12, got {args.month}")

    try:
        groups = read_workbook(args.workbook)
        if not groups:
            print(f"Warning: no budget sheets found in {args.workbook}", file=sys.stderr)
            return 1

        print(f"Workbook: {args.workbook}")
        print(f"Sheets: {len(groups)}")

        if args.mode == 'table':
            print("-" * 50)
            report = run_table_batch(groups, Path(args.output_dir), dry_run=args.dry_run)
        else:
            store = TemplateStore(args.template)
            config = MutationConfig(
                year=None if args.no_date else args.year,
                month=None if args.no_date else args.month,
                office_placeholder=args.office_placeholder,
                anchor_spec=load_anchor_spec(args.anchors) if args.anchors else DEFAULT_ANCHOR_SPEC,
            )
            print(f"Template: {store.template_path}")
            if config.date_enabled:
                print(f"Month: {config.year}年{config.month}月")
            print("-" * 50)

            mutator = TemplateMutator(store, args.output_dir, config,
                                      dry_run=args.dry_run, verbose=args.verbose)
            report = mutator.run_batch(groups)

        print_report(report, Path(args.output_dir))
        return 1 if report.failed else 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
