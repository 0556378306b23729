"""
Tests for the command line interface.
"""

import json

import pytest
from nsrules import __version__
from nsrules.cli import EXIT_CONFIG_ERROR, EXIT_OK, EXIT_VIOLATIONS, build_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("NSRULES_CONFIG", raising=False)
    monkeypatch.delenv("NSRULES_CONTEXT_LINES", raising=False)


class TestMain:
    """Test exit codes and output."""

    def test_violations_exit_code(self, shipping_dir, capsys):
        """A run with violations exits 1 and prints the excerpt."""
        status = main(["-c", str(shipping_dir / "ns-rules.yaml")])
        out = capsys.readouterr().out
        assert status == EXIT_VIOLATIONS
        assert "error[namespace-rule-violation]: 'shipping.entity.port' is not allowed" in out
        assert "Found 1 rule violation" in out
        assert out.rstrip().endswith("3 files skipped")

    def test_context_lines_from_config(self, shipping_dir, capsys):
        """The configured context is used unless overridden."""
        main(["-c", str(shipping_dir / "ns-rules.yaml")])
        out = capsys.readouterr().out
        assert '2 |   "Ports that ships can dock at."' in out

        main(["-c", str(shipping_dir / "ns-rules.yaml"), "-n", "0"])
        out = capsys.readouterr().out
        assert "Ports that ships" not in out

    def test_clean_exit_code(self, clean_dir, capsys):
        """A clean run exits 0."""
        assert main(["--config", str(clean_dir / "ns-rules.yaml")]) == EXIT_OK
        assert capsys.readouterr().out.startswith("All checks passed")

    def test_config_from_env(self, clean_dir, monkeypatch, capsys):
        """NSRULES_CONFIG is used when no path is given."""
        monkeypatch.setenv("NSRULES_CONFIG", str(clean_dir / "ns-rules.yaml"))
        assert main([]) == EXIT_OK

    def test_missing_config(self, tmp_path, capsys):
        """A missing config file exits 2."""
        status = main(["-c", str(tmp_path / "missing.yaml")])
        err = capsys.readouterr().err
        assert status == EXIT_CONFIG_ERROR
        assert err.startswith("error[configuration-error]: there was a problem loading the configuration file")

    def test_invalid_rule(self, tmp_path, capsys):
        """An invalid rule pattern exits 2."""
        path = tmp_path / "ns-rules.yaml"
        path.write_text("src-dirs: [src]\nrules:\n  'a..b':\n    restrict-to: [c]\n", encoding="utf-8")
        assert main(["-c", str(path)]) == EXIT_CONFIG_ERROR
        assert "the rule 'a..b' is invalid" in capsys.readouterr().err

    def test_json_output(self, shipping_dir, capsys):
        """--json prints one JSON object per line."""
        status = main(["-c", str(shipping_dir / "ns-rules.yaml"), "--json", "-j", "1"])
        records = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert status == EXIT_VIOLATIONS
        assert [r["type"] for r in records].count("violation") == 1
        assert [r["type"] for r in records].count("warning") == 4
        assert records[-1] == {
            "type": "summary",
            "passed": False,
            "files_checked": 7,
            "namespaces_matched": 4,
            "violations": 1,
            "warnings": 4,
            "files_skipped": 3,
        }


class TestParser:
    """Test argument parsing."""

    def test_defaults(self):
        """No options given."""
        args = build_parser().parse_args([])
        assert args.config is None
        assert args.context_lines is None
        assert args.jobs is None
        assert not args.json_output
        assert args.verbose == 0

    @pytest.mark.parametrize("argv", [["-n", "-1"], ["-n", "x"], ["-j", "0"]])
    def test_invalid_numbers(self, argv, capsys):
        """Bad numeric options are usage errors."""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(argv)
        assert exc_info.value.code == 2

    def test_version(self, capsys):
        """--version prints the package version."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])
        assert __version__ in capsys.readouterr().out
