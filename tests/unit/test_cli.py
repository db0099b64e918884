"""
Unit tests for the command-line interface.
"""

import socket
from pathlib import Path

import pytest

from tinyhttpd.__main__ import build_parser, config_from_args, main


class TestArgumentParsing:

    def test_minimal(self):
        args = build_parser().parse_args(["-port", "8080"])
        config = config_from_args(args)

        assert config.port == 8080
        assert config.root_directory == "."
        assert config.host == "0.0.0.0"
        assert config.tls_enabled is False
        assert config.debug is False
        assert config.max_connections is None

    def test_all_options(self):
        args = build_parser().parse_args([
            "-port", "8443",
            "-path", "/srv/www",
            "-ssl", "cert.pem",
            "-key", "key.pem",
            "-host", "127.0.0.1",
            "-max-connections", "32",
            "-d",
        ])
        config = config_from_args(args)

        assert config.port == 8443
        assert config.root_directory == "/srv/www"
        assert config.tls_cert_path == "cert.pem"
        assert config.tls_key_path == "key.pem"
        assert config.host == "127.0.0.1"
        assert config.max_connections == 32
        assert config.debug is True

    def test_long_debug_flag(self):
        assert build_parser().parse_args(["-port", "1", "--debug"]).debug is True


class TestExitCodes:

    def test_help_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-h"])

        assert exc_info.value.code == 0
        assert "-port" in capsys.readouterr().out

    @pytest.mark.parametrize("flag", ["-v", "--version"])
    def test_version_exits_zero(self, flag: str, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([flag])

        assert exc_info.value.code == 0
        assert capsys.readouterr().out.strip() == "tinyhttpd v0.8.2"

    @pytest.mark.parametrize("argv", [
        [],
        ["-path", "."],
        ["-port"],
        ["-port", "http"],
        ["-port", "0"],
        ["-port", "70000"],
        ["-port", "8080", "-max-connections", "0"],
        ["-port", "8080", "--bogus"],
    ])
    def test_bad_arguments_exit_one(self, argv, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(argv)

        assert exc_info.value.code == 1
        assert "error" in capsys.readouterr().err

    def test_missing_root_exits_one(self, tmp_path: Path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-port", "8080", "-path", str(tmp_path / "missing")])

        assert exc_info.value.code == 1
        assert capsys.readouterr().err.startswith("Error: ")

    def test_port_in_use_exits_one(self, tmp_path: Path, capsys):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            with pytest.raises(SystemExit) as exc_info:
                main(["-port", str(port), "-host", "127.0.0.1", "-path", str(tmp_path)])

        assert exc_info.value.code == 1
        assert "Failed to bind" in capsys.readouterr().err

    def test_bad_certificate_exits_one(self, tmp_path: Path, free_port: int, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([
                "-port", str(free_port),
                "-host", "127.0.0.1",
                "-path", str(tmp_path),
                "-ssl", str(tmp_path / "missing.pem"),
            ])

        assert exc_info.value.code == 1
        assert "Cannot load TLS certificate" in capsys.readouterr().err
