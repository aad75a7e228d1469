"""Tests for reference, envelope and snapshot models."""

import pytest
from pydantic import ValidationError

from presigned_media.enums import BindingPhase
from presigned_media.models.references import EntityAssociation, SignedResourceReference
from presigned_media.models.refresh import RefreshEnvelope
from presigned_media.models.state import SignedUrlState


class TestEntityAssociation:
    def test_integer_id_is_stringified(self):
        assert EntityAssociation(entity_type="album", entity_id=12).entity_id == "12"

    def test_blank_values_rejected(self):
        with pytest.raises(ValidationError):
            EntityAssociation(entity_type=" ", entity_id="1")

    def test_frozen_and_hashable(self):
        a = EntityAssociation(entity_type="album", entity_id="1")
        assert a == EntityAssociation(entity_type="album", entity_id=1)
        assert len({a, EntityAssociation(entity_type="album", entity_id="1")}) == 1
        with pytest.raises(ValidationError):
            a.entity_id = "2"

    def test_query_params(self):
        assert EntityAssociation(entity_type="album", entity_id="1").as_query_params() == {
            "entityType": "album",
            "entityId": "1",
        }


class TestSignedResourceReference:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty(self, raw):
        assert SignedResourceReference(raw=raw).is_empty

    def test_refreshable_needs_key(self):
        assert not SignedResourceReference(raw="https://x/y").is_refreshable
        assert SignedResourceReference(raw="a.png", storage_key="a.png").is_refreshable


def test_envelope_parses_camel_case():
    envelope = RefreshEnvelope.model_validate(
        {"success": True, "data": {"fileKey": "a.png", "presignedUrl": "https://u", "expiresIn": 60}}
    )
    assert envelope.data.presigned_url == "https://u"
    assert envelope.data.expires_in == 60


def test_snapshot_serializes_camel_case():
    state = SignedUrlState(
        reference=SignedResourceReference(raw="a.png", storage_key="a.png"),
        session_id=1,
        current_url="https://u",
        phase=BindingPhase.VALID,
    )
    payload = state.snapshot().to_dict(by_alias=True)
    assert payload["currentUrl"] == "https://u"
    assert payload["storageKey"] == "a.png"
    assert payload["phase"] == "valid"
    assert "expiresAt" not in payload
