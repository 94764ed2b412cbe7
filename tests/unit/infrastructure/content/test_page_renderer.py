"""Unit tests for attestation page rendering and paths."""

from datetime import datetime, timezone

from vouchledger.infrastructure.content import (
    PageRenderer,
    genesis_page_path,
    origin_page_path,
    parse_peer_page_path,
    peer_page_path,
)

CREATED = datetime(2026, 3, 1, tzinfo=timezone.utc)


def test_paths():
    assert peer_page_path("Alice", "Bob") == "User:Alice/Attestations/by-Bob"
    assert origin_page_path("Alice") == "User:Alice/Attestations/invite-record"
    assert genesis_page_path("Alice") == "User:Alice/EntityAttestation"


def test_parse_peer_path():
    assert parse_peer_page_path("User:Alice Smith/Attestations/by-Bob") == (
        "Alice Smith",
        "Bob",
    )
    assert parse_peer_page_path("User:Alice/Attestations/invite-record") is None
    assert parse_peer_page_path("User:Alice") is None


def test_render_peer():
    body = PageRenderer().render_peer(
        subject_name="Alice",
        attester_name="Bob",
        attestation_type="collaborated",
        text="{{ 7 * 7 }} is text, not a template",
        created=CREATED,
    )

    assert body.startswith("{{Attestation\n")
    assert "|created=2026-03-01" in body
    assert "[[Category:Attestations by Bob]]" in body
    # Attester text is data, never evaluated
    assert "{{ 7 * 7 }} is text" in body


def test_render_origin_omits_empty_known_as():
    renderer = PageRenderer()

    with_name = renderer.render_origin(
        entity_type="bot",
        relationship_type="operator",
        inviter_name="Alice",
        invited_at=CREATED,
        invite_id=3,
        known_as="Helper",
        notes=None,
    )
    without_name = renderer.render_origin(
        entity_type="human",
        relationship_type="irl-buds",
        inviter_name="Alice",
        invited_at=CREATED,
        invite_id=4,
        known_as=None,
        notes="Met at the fair",
    )

    assert "|known_as=Helper" in with_name
    assert "[[Category:Bot Users]]" in with_name
    assert "known_as" not in without_name
    assert "Met at the fair" in without_name


def test_render_genesis():
    body = PageRenderer().render_genesis("Alice", "human", CREATED)

    assert body.startswith("{{EntityAttestation\n")
    assert "|genesis=yes" in body
    assert "[[Category:Genesis Users]]" in body
