"""
Report generation for the handshake compatibility harness
"""

import json
from jinja2 import Template
from colorama import Fore, Style
from pathlib import Path
from typing import Dict, List

from .matrix import TestCase
from .results import SuiteResult, TrialStatus


STATUS_SYMBOLS = {
    TrialStatus.SUCCEEDED_AS_EXPECTED: Fore.GREEN + "✓",
    TrialStatus.FAILED_AS_EXPECTED: Fore.GREEN + "✓",
    TrialStatus.MISMATCH: Fore.RED + "✗",
    TrialStatus.TIMEOUT: Fore.YELLOW + "⏱",
    TrialStatus.ERROR: Fore.RED + "⚠",
}


class ReportGenerator:
    """Generate trial reports in various formats"""

    def __init__(self, template_path: str):
        """
        Initialize report generator

        Args:
            template_path: Path to HTML template file
        """
        self.template_path = Path(template_path)

    def generate_html(self, suite_result: SuiteResult, output_path: str):
        """
        Generate HTML report

        Args:
            suite_result: SuiteResult object
            output_path: Path to output HTML file
        """
        if not self.template_path.exists():
            print(f"Warning: Template not found at {self.template_path}, skipping HTML report")
            return

        with open(self.template_path) as f:
            template = Template(f.read())

        html = template.render(
            timestamp=suite_result.timestamp.strftime('%Y-%m-%d %H:%M:%S'),
            completed=suite_result.completed,
            total_cases=suite_result.total_cases,
            executed=suite_result.executed,
            succeeded=suite_result.succeeded,
            failed_as_expected=suite_result.failed_as_expected,
            mismatched=suite_result.mismatched,
            timed_out=suite_result.timed_out,
            errors=suite_result.errors,
            total_duration=suite_result.total_duration,
            results=suite_result.results
        )

        with open(output_path, 'w') as f:
            f.write(html)

        print(f"\nHTML report generated: {output_path}")

    def generate_json(self, suite_result: SuiteResult, output_path: str):
        """
        Generate JSON report

        Args:
            suite_result: SuiteResult object
            output_path: Path to output JSON file
        """
        with open(output_path, 'w') as f:
            json.dump(suite_result.to_dict(), f, indent=2)

        print(f"JSON report generated: {output_path}")

    def print_console_summary(self, suite_result: SuiteResult):
        """
        Print summary to console

        Args:
            suite_result: SuiteResult object
        """
        print("\n" + "=" * 70)
        print("Handshake Compatibility Summary")
        print("=" * 70)
        print(f"Total Cases:          {suite_result.total_cases}")
        print(f"Executed:             {suite_result.executed}")
        print(f"✓ Succeeded:          {suite_result.succeeded}")
        print(f"✓ Failed as expected: {suite_result.failed_as_expected}")
        print(f"✗ Mismatch:           {suite_result.mismatched}")
        print(f"⏱ Timeout:            {suite_result.timed_out}")
        print(f"⚠ Error:              {suite_result.errors}")
        print(f"Duration:             {suite_result.total_duration:.2f}s")
        print("=" * 70)

        problems = [r for r in suite_result.results
                    if r.status in (TrialStatus.MISMATCH, TrialStatus.TIMEOUT, TrialStatus.ERROR)]
        if problems:
            print("\nFailed Trials:")
            for result in problems:
                print(f"  {STATUS_SYMBOLS[result.status]} #{result.case.index}{Style.RESET_ALL}: "
                      f"{result.error_message}")

        if suite_result.is_success():
            print(Fore.GREEN + "✓ All trials matched their prediction" + Style.RESET_ALL)
        else:
            print(Fore.RED + "✗ Run aborted" + Style.RESET_ALL)

        print()

    def print_matrix(self, cases: List[TestCase], summary: Dict[str, int]):
        """
        Print the test matrix without running it

        Args:
            cases: Test cases in matrix order
            summary: Output of summarize_matrix()
        """
        print("\nTest matrix:")
        print("-" * 70)

        for case in cases:
            outcome = Fore.GREEN + "success" if case.expected_success else Fore.RED + "failure"
            print(f"#{case.index:<5d} {outcome}{Style.RESET_ALL}")
            print(f"       {case.server.describe()}")
            print(f"       {case.client.describe()}")

        print("-" * 70)
        print(f"Server configs:    {summary['servers']}")
        print(f"Client configs:    {summary['clients']}")
        print(f"Cases:             {summary['cases']}")
        print(f"Expected success:  {summary['expected_success']}")
        print(f"Expected failure:  {summary['expected_failure']}")
        print()
