# tests/test_cli.py
import argparse
from contextlib import asynccontextmanager

import pytest

from bizdir.models.ownership_claim import OwnershipClaim
from cli import cli

from conftest import CLAIM_MESSAGE, make_business


@pytest.fixture
def cli_session(session, monkeypatch):
    @asynccontextmanager
    async def _scope():
        yield session

    monkeypatch.setattr(cli, "session_scope", _scope)
    return session


def test_parser_knows_every_command():
    parser = cli.create_parser()
    assert parser.parse_args(["match-category", "Mexican restaurant"]).label == "Mexican restaurant"
    assert parser.parse_args(["init-db", "--drop"]).drop is True
    assert set(cli.COMMANDS) == {"init-db", "match-category", "resolve-owner", "audit-claims", "regenerate-seo"}


def test_main_without_command_prints_help(capsys):
    assert cli.main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


@pytest.mark.asyncio
async def test_match_category(cli_session, restaurants, capsys):
    assert await cli.cmd_match_category(argparse.Namespace(label="Mexican restaurant")) == 0
    assert "Restaurants" in capsys.readouterr().out

    assert await cli.cmd_match_category(argparse.Namespace(label="Plumber")) == 1
    assert "unmatched" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_resolve_owner_and_audit(cli_session, capsys):
    b = await make_business(cli_session, "Casa Azul")

    assert await cli.cmd_resolve_owner(argparse.Namespace(business_id=b.id)) == 0
    assert "unclaimed" in capsys.readouterr().out

    assert await cli.cmd_audit_claims(argparse.Namespace()) == 0
    assert "No business" in capsys.readouterr().out

    cli_session.add(OwnershipClaim(business_id=b.id, user_id="u1", message=CLAIM_MESSAGE, status="approved"))
    await cli_session.commit()

    assert await cli.cmd_resolve_owner(argparse.Namespace(business_id=b.id)) == 0
    assert "owned by u1" in capsys.readouterr().out

    cli_session.add(OwnershipClaim(business_id=b.id, user_id="u2", message=CLAIM_MESSAGE, status="approved"))
    await cli_session.commit()

    assert await cli.cmd_audit_claims(argparse.Namespace()) == 1
    assert b.id in capsys.readouterr().out


@pytest.mark.asyncio
async def test_regenerate_seo(cli_session, capsys):
    b = await make_business(cli_session, "Casa Azul", city="Austin")
    b.seo_title = "stale"
    await cli_session.commit()

    assert await cli.cmd_regenerate_seo(argparse.Namespace()) == 0
    assert "1 business" in capsys.readouterr().out
    assert b.seo_title == "Casa Azul - Austin"
