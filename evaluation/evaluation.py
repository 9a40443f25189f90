#!/usr/bin/env python3
"""
Evaluation runner for the static Huffman coder.

This evaluation script:
- Runs pytest on the tests/ folder against the static_huffman modules
- Round-trips a small built-in corpus and records per-sample code statistics
- Generates a structured JSON report with environment metadata

Run with:
    python evaluation/evaluation.py [options]
"""
import os
import sys
import json
import uuid
import logging
import platform
import subprocess
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
MODULE_DIR = PROJECT_ROOT / "static_huffman"
if str(MODULE_DIR) not in sys.path:
    sys.path.insert(0, str(MODULE_DIR))

from huffman_service import HuffmanConfig, HuffmanService  # noqa: E402

logger = logging.getLogger("evaluation")

CORPUS = {
    "empty": b"",
    "single_byte": b"a",
    "repeated_byte": b"a" * 1000,
    "two_symbols": b"abb",
    "all_bytes_once": bytes(range(256)),
    "english_text": (
        b"Huffman coding assigns short codewords to frequent symbols and "
        b"long codewords to rare ones, so skewed inputs shrink the most. "
    ) * 20,
    "log_lines": b"".join(
        b"2024-01-01T00:00:%02dZ INFO request served in %dms\n" % (i % 60, i * 7 % 300)
        for i in range(200)
    ),
}


def generate_run_id():
    """Generate a short unique run ID."""
    return uuid.uuid4().hex[:8]


def get_git_info():
    """Get git commit and branch information."""
    git_info = {"git_commit": "unknown", "git_branch": "unknown"}
    commands = {
        "git_commit": ["git", "rev-parse", "HEAD"],
        "git_branch": ["git", "rev-parse", "--abbrev-ref", "HEAD"],
    }
    for key, cmd in commands.items():
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=str(PROJECT_ROOT),
                timeout=5
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("git lookup %s failed: %s", key, e)
            continue
        if result.returncode == 0:
            value = result.stdout.strip()
            git_info[key] = value[:8] if key == "git_commit" else value

    return git_info


def get_environment_info():
    """Collect environment information for the report."""
    git_info = get_git_info()

    return {
        "python_version": platform.python_version(),
        "platform": platform.platform(),
        "os": platform.system(),
        "os_release": platform.release(),
        "architecture": platform.machine(),
        "hostname": platform.node(),
        "git_commit": git_info["git_commit"],
        "git_branch": git_info["git_branch"],
    }


def run_pytest(tests_dir, timeout=300):
    """
    Run pytest on the tests/ folder with the module directory on PYTHONPATH.

    Args:
        tests_dir: Path to the tests directory
        timeout: Seconds before the run is abandoned

    Returns:
        dict with test results
    """
    print(f"\n{'=' * 60}")
    print("RUNNING TESTS")
    print(f"{'=' * 60}")
    print(f"Tests directory: {tests_dir}")

    cmd = [
        sys.executable, "-m", "pytest",
        str(tests_dir),
        "-v",
        "--tb=short",
    ]

    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(MODULE_DIR), env.get("PYTHONPATH")) if p
    )

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            cwd=str(Path(tests_dir).parent),
            env=env,
            timeout=timeout
        )
    except subprocess.TimeoutExpired:
        print("❌ Test execution timed out")
        return _failed_run("Test execution timed out")
    except OSError as e:
        print(f"❌ Error running tests: {e}")
        return _failed_run(str(e))

    stdout = result.stdout
    stderr = result.stderr
    tests = parse_pytest_verbose_output(stdout)
    summary = summarize_outcomes(tests)

    print(
        f"\nResults: {summary['passed']} passed, {summary['failed']} failed, "
        f"{summary['errors']} errors, {summary['skipped']} skipped (total: {summary['total']})"
    )
    for test in tests:
        status_icon = {
            "passed": "✅",
            "failed": "❌",
            "error": "💥",
            "skipped": "⏭️"
        }.get(test.get("outcome"), "❓")
        print(f"  {status_icon} {test.get('nodeid', 'unknown')}: {test.get('outcome', 'unknown')}")

    return {
        "success": result.returncode == 0,
        "exit_code": result.returncode,
        "tests": tests,
        "summary": summary,
        "stdout": stdout[-3000:] if len(stdout) > 3000 else stdout,
        "stderr": stderr[-1000:] if len(stderr) > 1000 else stderr,
    }


def _failed_run(error):
    return {
        "success": False,
        "exit_code": -1,
        "tests": [],
        "summary": {"error": error},
        "stdout": "",
        "stderr": "",
    }


STATUS_WORDS = {
    " PASSED": "passed",
    " FAILED": "failed",
    " ERROR": "error",
    " SKIPPED": "skipped",
}


def parse_pytest_verbose_output(output):
    """Parse pytest verbose output to extract test results."""
    tests = []

    for line in output.split('\n'):
        line_stripped = line.strip()

        # Match lines like: tests/test_huffman_core.py::test_arena_sizing PASSED [ 10%]
        if '::' not in line_stripped:
            continue
        for status_word, outcome in STATUS_WORDS.items():
            if status_word in line_stripped:
                nodeid = line_stripped.split(status_word)[0].strip()
                tests.append({
                    "nodeid": nodeid,
                    "name": nodeid.split("::")[-1],
                    "outcome": outcome,
                })
                break

    return tests


def summarize_outcomes(tests):
    outcomes = [t.get("outcome") for t in tests]
    return {
        "total": len(tests),
        "passed": outcomes.count("passed"),
        "failed": outcomes.count("failed"),
        "errors": outcomes.count("error"),
        "skipped": outcomes.count("skipped"),
    }


def run_corpus(corpus=None, service=None):
    """Round-trip every corpus sample and record its code statistics."""
    corpus = CORPUS if corpus is None else corpus
    service = service or HuffmanService(HuffmanConfig(strict_decode=True))

    print(f"\n{'=' * 60}")
    print("CORPUS ROUND TRIPS")
    print(f"{'=' * 60}")

    samples = {}
    for name, data in corpus.items():
        encoded = service.compress(data)
        roundtrip_ok = service.decompress(encoded) == bytes(data)
        stats = asdict(service.stats(encoded))
        stats["roundtrip_ok"] = roundtrip_ok
        samples[name] = stats
        print(
            f"  {'✅' if roundtrip_ok else '❌'} {name}: {stats['original_size']} bytes -> "
            f"{stats['encoded_bits']} bits ({stats['bits_per_symbol']:.3f} bits/symbol)"
        )

    return {
        "success": all(s["roundtrip_ok"] for s in samples.values()),
        "samples": samples,
    }


def run_evaluation(skip_tests=False):
    """
    Run the test suite and the corpus round trips.

    Returns dict with both result sets.
    """
    print(f"\n{'=' * 60}")
    print("STATIC HUFFMAN EVALUATION")
    print(f"{'=' * 60}")

    if skip_tests:
        test_results = {"success": True, "skipped": True, "tests": [], "summary": {}}
    else:
        test_results = run_pytest(PROJECT_ROOT / "tests")
    corpus_results = run_corpus()

    print(f"\n{'=' * 60}")
    print("EVALUATION SUMMARY")
    print(f"{'=' * 60}")
    print(f"  Tests:  {'✅ PASSED' if test_results.get('success') else '❌ FAILED'}")
    print(f"  Corpus: {'✅ PASSED' if corpus_results.get('success') else '❌ FAILED'}")

    return {
        "tests": test_results,
        "corpus": corpus_results,
    }


def generate_output_path(root=None):
    """Generate output path in format: evaluation/YYYY-MM-DD/HH-MM-SS/report.json"""
    now = datetime.now()
    date_str = now.strftime("%Y-%m-%d")
    time_str = now.strftime("%H-%M-%S")

    root = Path(root) if root is not None else PROJECT_ROOT
    output_dir = root / "evaluation" / date_str / time_str
    output_dir.mkdir(parents=True, exist_ok=True)

    return output_dir / "report.json"


def main(argv=None):
    """Main entry point for evaluation."""
    import argparse

    parser = argparse.ArgumentParser(description="Run static Huffman evaluation")
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output JSON file path (default: evaluation/YYYY-MM-DD/HH-MM-SS/report.json)"
    )
    parser.add_argument(
        "--skip-tests",
        action="store_true",
        help="Only run the corpus round trips"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    run_id = generate_run_id()
    started_at = datetime.now()

    print(f"Run ID: {run_id}")
    print(f"Started at: {started_at.isoformat()}")

    try:
        results = run_evaluation(skip_tests=args.skip_tests)
        success = results["tests"].get("success", False) and results["corpus"]["success"]
        error_message = None if success else "Evaluation failed"
    except Exception as e:
        logger.exception("evaluation crashed")
        results = None
        success = False
        error_message = str(e)

    finished_at = datetime.now()
    duration = (finished_at - started_at).total_seconds()

    report = {
        "run_id": run_id,
        "started_at": started_at.isoformat(),
        "finished_at": finished_at.isoformat(),
        "duration_seconds": round(duration, 6),
        "success": success,
        "error": error_message,
        "environment": get_environment_info(),
        "results": results,
    }

    if args.output:
        output_path = Path(args.output)
    else:
        output_path = generate_output_path()

    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(report, f, indent=2)
    print(f"\n✅ Report saved to: {output_path}")

    print(f"\n{'=' * 60}")
    print("EVALUATION COMPLETE")
    print(f"{'=' * 60}")
    print(f"Run ID: {run_id}")
    print(f"Duration: {duration:.2f}s")
    print(f"Success: {'✅ YES' if success else '❌ NO'}")

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
