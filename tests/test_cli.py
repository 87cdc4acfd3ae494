"""
Tests for the command-line front end.
"""

import argparse
import json
import socket
import threading

import pytest

from spm.backend import Dealer, TCPChannel, TwoPartyBackend
from spm.backend.dealer import agree_on_seed
from spm.cli import describe_circuit, main, parse_args, parse_party
from spm.matching import ProtocolParams
from spm.matching.protocol import agree_on_params, run_repetition
from spm.party import PeerId


def free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestParseParty:
    def test_valid(self):
        assert parse_party("1,127.0.0.1,7777") == (1, ("127.0.0.1", 7777))
        assert parse_party("0,localhost,80") == (0, ("localhost", 80))

    @pytest.mark.parametrize("value", ["2,host,80", "0,host", "0,host,0", "0,host,99999", "x"])
    def test_invalid(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_party(value)


class TestParseArgs:
    PARTIES = ["--party", "0,127.0.0.1,7777", "--party", "1,127.0.0.1,7778"]

    def test_pattern_holder(self):
        args = parse_args(
            ["--my-id", "0", "--role", "pattern_holder", "--pattern", "AB", "--text-size", "4"]
            + self.PARTIES
        )
        assert args.parties == {0: ("127.0.0.1", 7777), 1: ("127.0.0.1", 7778)}
        assert args.repetitions == 1

    @pytest.mark.parametrize(
        "argv",
        [
            ["--role", "pattern_holder", "--pattern", "AB", "--text-size", "4"],
            ["--my-id", "0", "--pattern", "AB", "--text-size", "4"],
            ["--my-id", "0", "--role", "pattern_holder", "--text-size", "4"],
            ["--my-id", "0", "--role", "pattern_holder", "--pattern", "AB"],
            ["--my-id", "1", "--role", "text_holder", "--text", "XABY"],
            ["--my-id", "1", "--role", "text_holder", "--pattern-size", "2"],
        ],
    )
    def test_missing_options(self, argv):
        with pytest.raises(SystemExit):
            parse_args(argv + self.PARTIES)

    def test_missing_parties(self):
        with pytest.raises(SystemExit):
            parse_args(["--my-id", "1", "--role", "text_holder", "--text", "XABY",
                        "--pattern-size", "2", "--party", "0,127.0.0.1,7777"])

    def test_no_run_needs_no_parties(self):
        args = parse_args(["--my-id", "1", "--role", "text_holder", "--text", "XABY",
                           "--pattern-size", "2", "--no-run"])
        assert args.no_run

    def test_config_file(self, tmp_path):
        config = tmp_path / "party.json"
        config.write_text(json.dumps({
            "my_id": 1,
            "role": "text_holder",
            "text": "XABY",
            "pattern_size": 2,
            "repetitions": 2,
            "party": ["0,127.0.0.1,7777", "1,127.0.0.1,7778"],
        }))
        args = parse_args(["--config-file", str(config), "--repetitions", "3"])
        assert args.text == "XABY"
        assert args.repetitions == 3
        assert args.parties == {0: ("127.0.0.1", 7777), 1: ("127.0.0.1", 7778)}

    def test_command_line_parties_override_config(self, tmp_path):
        config = tmp_path / "party.json"
        config.write_text(json.dumps({
            "my_id": 0, "role": "pattern_holder", "pattern": "AB", "text_size": 4,
            "party": ["0,10.0.0.1,1", "1,10.0.0.2,2"],
        }))
        args = parse_args(["--config-file", str(config)] + self.PARTIES)
        assert args.parties[0] == ("127.0.0.1", 7777)

    def test_bad_config_file(self, tmp_path):
        config = tmp_path / "bad.json"
        config.write_text("[1, 2]")
        with pytest.raises(SystemExit):
            parse_args(["--config-file", str(config)])


class TestDescribeCircuit:
    def test_counts(self):
        params = ProtocolParams("pattern_holder", 0, pattern_size=2, text_size=4)
        plan = describe_circuit(params)
        assert plan == {
            "windows": 3,
            "character_sharings": 8,
            "digest_sharings": 192,
            "zero_tests": 96,
            "and_gates": 93,
        }


class TestMain:
    def test_no_run_json(self, capsys):
        code = main(["--my-id", "0", "--role", "pattern_holder", "--pattern", "AB",
                     "--text-size", "4", "--no-run", "--json"])
        assert code == 0
        assert json.loads(capsys.readouterr().out)["windows"] == 3

    def test_invalid_sizes(self, capsys):
        code = main(["--my-id", "0", "--role", "pattern_holder", "--pattern", "ABCD",
                     "--text-size", "4", "--no-run"])
        assert code == 1
        assert "error" in capsys.readouterr().err

    def test_two_parties_over_tcp(self):
        port = free_port()
        parties = ["--party", f"0,127.0.0.1,{port}", "--party", "1,127.0.0.1,1"]
        codes = {}

        def pattern_holder():
            codes[0] = main(["--my-id", "0", "--role", "pattern_holder", "--pattern", "AB",
                             "--text-size", "4"] + parties)

        thread = threading.Thread(target=pattern_holder)
        thread.start()
        codes[1] = main(["--my-id", "1", "--role", "text_holder", "--text", "XABY",
                         "--pattern-size", "2"] + parties)
        thread.join()
        assert codes == {0: 0, 1: 0}

    def test_partial_results_on_failure(self, capsys):
        """The peer leaves after one of two repetitions: print it, exit 1."""
        port = free_port()
        parties = ["--party", f"0,127.0.0.1,{port}", "--party", "1,127.0.0.1,1"]

        def pattern_holder_one_repetition():
            channel = TCPChannel.listen("127.0.0.1", port, timeout=10.0)
            params = ProtocolParams("pattern_holder", 0, 2, 4)
            agree_on_params(channel, params)
            dealer = Dealer(agree_on_seed(channel, 0))
            run_repetition(params, b"AB", TwoPartyBackend(channel, PeerId.FIRST, dealer.child(0)))
            channel.close()

        thread = threading.Thread(target=pattern_holder_one_repetition)
        thread.start()
        code = main(["--my-id", "1", "--role", "text_holder", "--text", "XABY",
                     "--pattern-size", "2", "--repetitions", "2"] + parties)
        thread.join()

        assert code == 1
        captured = capsys.readouterr()
        assert "error" in captured.err
        assert "Repetition 0:" in captured.out
        assert "Window 1: EQUAL" in captured.out
        assert "Window 0: NOT EQUAL" in captured.out
        assert "Repetition 1:" not in captured.out
