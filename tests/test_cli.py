import pytest

from olnode import cli
from olnode.core.models import WizardFlags
from olnode.errors import NetworkError
from olnode.utils.config import build_parser


def test_val_wizard_flags_parse():
    args = build_parser().parse_args(
        [
            "val-wizard",
            "--path", "/tmp/node",
            "--chain-id", "2",
            "--rebuild-genesis",
            "--skip-mining",
            "--template-url", "http://seed/account.json",
        ]
    )
    assert args.command == "val-wizard"
    assert args.chain_id == 2
    assert args.rebuild_genesis and args.skip_mining
    assert not args.skip_fetch_genesis and not args.keygen
    assert args.github_org == "OLSF"


def test_main_passes_wizard_options(monkeypatch):
    seen = {}
    monkeypatch.setattr(cli, "run_val_wizard", lambda **kw: seen.update(kw))

    assert cli.main(["val-wizard", "--path", "/tmp/node", "--keygen", "--autopay-file", "a.json"]) == 0

    assert seen["path"] == "/tmp/node"
    assert seen["flags"] == WizardFlags(keygen=True)
    assert seen["autopay_file"] == "a.json"
    assert seen["repo"].repo == "genesis-archive"


def test_main_passes_create_options(monkeypatch):
    seen = {}
    monkeypatch.setattr(cli, "create_account", lambda **kw: seen.update(kw))

    cli.main(["create", "--skip-keys", "--val", "--path", "/tmp/acct"])

    assert seen == {"skip_keys": True, "val": True, "path": "/tmp/acct"}


def test_main_turns_pipeline_errors_into_exit(monkeypatch):
    def boom(**kw):
        err = NetworkError("template unreachable", resource="http://seed")
        err.stage = "template"
        raise err

    monkeypatch.setattr(cli, "run_val_wizard", boom)

    with pytest.raises(SystemExit) as exc:
        cli.main(["val-wizard"])
    assert str(exc.value.code).startswith("[olnode] stage=template")
    assert "http://seed" in str(exc.value.code)
