"""
Tests for the command-line entry point.
"""
import orjson
import pytest

from cyphernode_setup.__main__ import main, parse_args
from cyphernode_setup.conf import SetupConfig
from cyphernode_setup.document import ConfigurationDocument
from cyphernode_setup.vault import Vault


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.setenv("CFG_PASSWORD", "correct-horse")
    monkeypatch.setenv("VAULT_KDF_ITERATIONS", "1000")
    monkeypatch.delenv("VAULT_CIPHER_BACKEND", raising=False)
    return tmp_path


def _document(directory):
    config = SetupConfig.from_env(directory)
    vault = Vault(config.config_path, config.vault)
    return ConfigurationDocument.decode(
        vault.read_document(vault.open("correct-horse"), config.config_document)
    )


class TestArguments:

    def test_defaults(self):
        args = parse_args([])
        assert args.mode is None
        assert args.rotate_keys is False

    def test_recreate(self):
        assert parse_args(["recreate"]).mode == "recreate"

    def test_unknown_mode(self):
        with pytest.raises(SystemExit):
            parse_args(["destroy"])


class TestMain:

    def test_fresh_run(self, env):
        answers = env / "answers.json"
        answers.write_bytes(orjson.dumps({"net": "regtest", "auth_clientkeyspassword": "ck"}))
        setup_dir = env / "setup"

        assert main(["--dir", str(setup_dir), "--answers", str(answers)]) == 0

        assert (setup_dir / "config.vault").exists()
        assert (setup_dir / "clientKeys.vault").exists()
        assert _document(setup_dir)["net"] == "regtest"

    def test_wrong_password_exits_non_zero(self, env, monkeypatch, capsys):
        setup_dir = env / "setup"
        assert main(["--dir", str(setup_dir)]) == 0
        monkeypatch.setenv("CFG_PASSWORD", "battery-staple")

        assert main(["--dir", str(setup_dir), "recreate"]) == 1
        assert "error!" in capsys.readouterr().err

    def test_invalid_settings(self, env, monkeypatch, capsys):
        monkeypatch.setenv("VAULT_CIPHER_BACKEND", "rot13")
        assert main(["--dir", str(env)]) == 2
        assert "invalid settings" in capsys.readouterr().err


class TestAnswerPrompts:

    @pytest.fixture
    def replies(self, monkeypatch):
        """Queue of operator replies typed at the terminal."""
        queue = []
        prompts = []

        def fake_input(message):
            prompts.append(message)
            return queue.pop(0)

        monkeypatch.setattr("builtins.input", fake_input)
        return queue, prompts

    def _run(self, env, answers):
        answers_file = env / "answers.json"
        answers_file.write_bytes(orjson.dumps(answers))
        setup_dir = env / "setup"
        assert main(["--dir", str(setup_dir), "--answers", str(answers_file)]) == 0
        return _document(setup_dir)

    def test_rejected_answer_is_asked_again(self, env, replies, capsys):
        queue, prompts = replies
        queue.extend(["still bad", "satoshi"])

        document = self._run(env, {"username": "bad user"})

        assert document["username"] == "satoshi"
        assert len(prompts) == 2
        assert prompts[0].startswith("username [cyphernode]")
        assert capsys.readouterr().err.count("username: Choose a valid username") == 2

    def test_empty_reply_keeps_stored_value(self, env, replies):
        queue, _ = replies
        queue.append("")

        document = self._run(env, {"username": "bad user", "net": "regtest"})

        assert document["username"] == "cyphernode"
        assert document["net"] == "regtest"

    def test_numeric_answers_do_not_abort(self, env, replies):
        queue, prompts = replies

        document = self._run(env, {"username": 123, "lightning_nodecolor": 123456})

        assert prompts == []
        assert document["username"] == "123"
        assert document["lightning_nodecolor"] == "123456"
