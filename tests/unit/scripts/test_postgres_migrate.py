import pytest

from scripts.postgres_migrate import build_parser, main


def test_parser_defaults_to_governance_dsn_from_environment(monkeypatch):
    monkeypatch.setenv("GOVERNANCE_POSTGRES_DSN", " postgresql://u:p@db:5432/governance ")

    args = build_parser().parse_args([])

    assert args.dsn == "postgresql://u:p@db:5432/governance"
    assert args.namespace == "governance"


def test_main_requires_dsn():
    with pytest.raises(RuntimeError) as exc:
        main(["--dsn", ""])
    assert str(exc.value) == "POSTGRES_MIGRATION_DSN_REQUIRED:governance"


def test_main_requires_driver(monkeypatch):
    monkeypatch.setattr("scripts.postgres_migrate.find_spec", lambda _name: None)

    with pytest.raises(RuntimeError) as exc:
        main(["--dsn", "postgresql://u:p@db:5432/governance"])
    assert str(exc.value) == "POSTGRES_MIGRATION_DRIVER_MISSING"
