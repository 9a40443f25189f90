import os
import sys
import json

EVALUATION_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'evaluation'))
if EVALUATION_DIR not in sys.path:
	sys.path.insert(0, EVALUATION_DIR)

import evaluation  # noqa: E402

SAMPLE_OUTPUT = """
============================= test session starts ==============================
collected 4 items

tests/test_huffman_core.py::test_count_bytes_empty PASSED                [ 25%]
tests/test_huffman_core.py::test_arena_sizing[x-2] FAILED                [ 50%]
tests/test_huffman_service.py::test_empty_input SKIPPED (no reason)      [ 75%]
tests/test_huffman_service.py::test_single_byte ERROR                    [100%]
=========================== short test summary info ============================
FAILED tests/test_huffman_core.py::test_arena_sizing[x-2] - assert 3 == 2
"""


def test_parse_pytest_verbose_output():
	tests = evaluation.parse_pytest_verbose_output(SAMPLE_OUTPUT)
	assert [t["outcome"] for t in tests] == ["passed", "failed", "skipped", "error"]
	assert tests[0] == {
		"nodeid": "tests/test_huffman_core.py::test_count_bytes_empty",
		"name": "test_count_bytes_empty",
		"outcome": "passed",
	}
	assert tests[1]["name"] == "test_arena_sizing[x-2]"


def test_summarize_outcomes():
	tests = evaluation.parse_pytest_verbose_output(SAMPLE_OUTPUT)
	assert evaluation.summarize_outcomes(tests) == {
		"total": 4,
		"passed": 1,
		"failed": 1,
		"errors": 1,
		"skipped": 1,
	}


def test_run_corpus_round_trips_every_sample():
	results = evaluation.run_corpus()
	assert results["success"]
	assert set(results["samples"]) == set(evaluation.CORPUS)
	assert results["samples"]["all_bytes_once"]["node_count"] == 511
	assert results["samples"]["empty"]["encoded_bits"] == 0
	assert results["samples"]["repeated_byte"]["bits_per_symbol"] == 1.0


def test_generate_output_path(tmp_path):
	path = evaluation.generate_output_path(tmp_path)
	assert path.name == "report.json"
	assert path.parent.is_dir()
	assert tmp_path in path.parents


def test_main_writes_report(tmp_path):
	output = tmp_path / "out" / "report.json"
	code = evaluation.main(["--skip-tests", "--output", str(output)])
	assert code == 0
	report = json.loads(output.read_text())
	assert report["success"] is True
	assert report["error"] is None
	assert report["results"]["corpus"]["success"] is True
	assert "python_version" in report["environment"]
	assert report["environment"]["git_commit"]
