import os
import yaml
from click.testing import CliRunner
from t2k.CLI.main import cli


def _topology(airflow_dir):
    return os.path.join(airflow_dir, "topology.yml")


def _overlay(airflow_dir, name):
    return os.path.join(airflow_dir, "overlays", f"{name}.yml")


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    assert 'Print the resolved topology' in result.output


def test_cli_missing_file():
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', 'non_existent.yml', 'validate'])
    assert result.exit_code == 1
    assert 'Error: non_existent.yml not found.' in result.output


def test_cli_directory_as_file(tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', str(tmp_path), 'validate'])
    assert result.exit_code == 1
    assert f'Error: {tmp_path} not found.' in result.output


def test_cli_merge(airflow_dir):
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', _topology(airflow_dir), '-o', _overlay(airflow_dir, 'prod'), 'merge'])
    assert result.exit_code == 0
    merged = yaml.safe_load(result.output)
    assert merged['namespace'] == 'airflow-prod'
    assert merged['services']['worker']['replicas'] == 5


def test_cli_validate(airflow_dir):
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', _topology(airflow_dir), 'validate'])
    assert result.exit_code == 0
    assert 'Topology airflow is valid.' in result.output


def test_cli_validate_reports_errors(tmp_path):
    path = tmp_path / "topology.yml"
    path.write_text(
        "services:\n"
        "  worker:\n"
        "    image: apache/airflow\n"
        "    replicas: -1\n"
        "    volumes:\n"
        "      - claim: logs\n"
        "        mount_path: /opt/airflow/logs\n"
    )
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', str(path), 'validate'])
    assert result.exit_code == 1
    assert "undeclared storage claim 'logs'" in result.output
    assert 'replicas must be >= 0' in result.output


def test_cli_unknown_service_in_overlay(tmp_path, airflow_dir):
    overlay = tmp_path / "bad.yml"
    overlay.write_text("services:\n  cache:\n    replicas: 2\n")
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', _topology(airflow_dir), '-o', str(overlay), 'merge'])
    assert result.exit_code == 1
    assert "unknown service 'cache'" in result.output


def test_cli_graph(airflow_dir):
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', _topology(airflow_dir), 'graph'])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].startswith('KIND')
    assert lines[2].startswith('Secret')
    assert any(line.startswith('Job') and 'airflow-init' in line for line in lines)


def test_cli_render(airflow_dir):
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', _topology(airflow_dir), '-o', _overlay(airflow_dir, 'dev'), 'render'])
    assert result.exit_code == 0
    docs = list(yaml.safe_load_all(result.output))
    assert docs[0]['kind'] == 'Secret'
    assert docs[-1]['kind'] == 'Service'
    config = next(d for d in docs if d['kind'] == 'ConfigMap')
    assert config['data']['AIRFLOW__CORE__LOAD_EXAMPLES'] == 'True'
    assert all(d['metadata']['namespace'] == 'airflow-dev' for d in docs)


def test_cli_build(tmp_path, airflow_dir):
    out = tmp_path / "dist"
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', _topology(airflow_dir), 'build', '--out', str(out)])
    assert result.exit_code == 0
    assert 'Wrote 16 manifests' in result.output
    kustomization = yaml.safe_load((out / "kustomization.yaml").read_text())
    assert kustomization['namespace'] == 'airflow'
    assert len(kustomization['resources']) == 16
