import json

import run_compat_tests
from tls_compat_framework.config import HarnessConfig
from tls_compat_framework.matrix import build_default_matrix


def write_config(tmp_path, families="[TLSv1]"):
    path = tmp_path / 'harness.yaml'
    path.write_text(
        "vocabulary:\n"
        f"  protocol_families: {families}\n"
    )
    return path


def test_list_cases_prints_matrix_summary(tmp_path, capsys):
    path = write_config(tmp_path)
    cases = build_default_matrix(HarnessConfig(str(path)).get_vocabulary())

    assert run_compat_tests.main(['--config', str(path), '--list-cases']) == 0

    out = capsys.readouterr().out
    assert f"Cases:             {len(cases)}" in out
    assert "Expected failure:" in out


def test_missing_config_file_fails(tmp_path, capsys):
    assert run_compat_tests.main(['--config', str(tmp_path / 'absent.yaml'), '--list-cases']) == 1
    assert "Error" in capsys.readouterr().out


def test_case_index_out_of_range(tmp_path, capsys):
    path = write_config(tmp_path)

    assert run_compat_tests.main(['--config', str(path), '--case', '100000']) == 1
    assert "--case must be between 0" in capsys.readouterr().out


def test_fatal_trial_still_writes_json_report(tmp_path, monkeypatch):
    path = write_config(tmp_path)
    report = tmp_path / 'report.json'

    def explode(self, cases):
        raise RuntimeError("port busy")

    monkeypatch.setattr(run_compat_tests.HandshakeOrchestrator, 'run', explode)

    assert run_compat_tests.main(['--config', str(path), '--case', '0', '--json', str(report)]) == 1

    data = json.loads(report.read_text())
    assert data['completed'] is False
    assert data['summary']['executed'] == 0
