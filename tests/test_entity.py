"""
Tests for Entity: factory, serialization, validation, linking and saving.
"""

import pytest

from resourceful import (
    Entity,
    EntityValidationError,
    NoEndpointError,
    RelationshipError,
    ValidationCode,
)

from conftest import ASSETS, CONTENTS, FakeTransport, make_endpoint


def stored(endpoint_plural):
    """Handler echoing the posted/put body back as the service would."""
    def handler(method, url, json):
        if json is not None:
            return json
        return {endpoint_plural: [{}]}
    return handler


class TestNewResource:
    """Tests for ResourcefulEndpoint.new_resource."""

    def test_derives_ref_from_owner_and_name(self, contents):
        entity = contents.new_resource({"owner": "acme", "name": "x"})

        assert entity.ref == "acme:x"
        assert entity.is_new is True

    def test_owner_defaults_to_tenancy(self, contents):
        entity = contents.new_resource({"name": "x"})

        assert entity.owner == "test"
        assert entity.ref == "test:x"

    def test_existing_ref_is_kept(self, contents):
        entity = contents.new_resource({"name": "x", "ref": "other:y"})
        assert entity.ref == "other:y"

    def test_no_ref_without_name(self, contents):
        entity = contents.new_resource()
        assert entity.ref is None
        assert entity.owner == "test"


class TestFieldAccess:

    def test_item_and_attribute_access(self, contents):
        entity = Entity({"ref": "t:1", "title": "Hello"}, contents)

        assert entity["title"] == "Hello"
        assert entity.title == "Hello"
        assert "title" in entity
        entity["title"] = "Bye"
        assert entity.get("title") == "Bye"

    def test_missing_attribute_raises(self, contents):
        with pytest.raises(AttributeError):
            Entity({}, contents).title

    def test_bookkeeping_is_kept_out_of_data(self, contents):
        entity = Entity({"ref": "t:1", "is_new": True, "linked": {"assets": [{}]}}, contents)

        assert entity.is_new is True
        assert entity.linked == {"assets": [{}]}
        assert entity.data == {"ref": "t:1"}


class TestSerialization:

    def test_to_json_emits_exactly_the_descriptor_fields(self, contents):
        entity = contents.new_resource({"name": "x", "title": "X", "local": "ignored"})

        json = entity.to_json()

        assert set(json) == set(CONTENTS["fields"])
        assert json["title"] == "X"
        assert json["duration"] == "PT0M"
        assert json["type"] is None
        assert "local" not in json
        assert "is_new" not in json

    def test_to_json_keeps_explicit_none(self, contents):
        entity = Entity({"duration": None}, contents)
        assert entity.to_json()["duration"] is None

    def test_unbound_to_json_returns_stored_data(self):
        entity = Entity({"ref": "t:1", "anything": 1})
        assert entity.to_json() == {"ref": "t:1", "anything": 1}

    def test_serialise_wraps_in_plural_envelope(self, contents):
        entity = contents.new_resource({"name": "x"})

        envelope = entity.serialise()

        assert list(envelope) == ["contents"]
        assert envelope["contents"] == [entity.to_json()]


class TestValidateField:
    """Tests for the per-field validation state machine."""

    def test_unknown_field(self, contents):
        result = Entity({}, contents).validate_field("nope")

        assert result.code == ValidationCode.NO_FIELD
        assert result.valid is False
        assert result.message == "nope does not exist"

    def test_required_unset(self, contents):
        result = Entity({}, contents).validate_field("owner")

        assert result.code == ValidationCode.REQUIRED_FIELD
        assert result.field == "owner"

    def test_optional_unset_is_valid(self, contents):
        result = Entity({}, contents).validate_field("title")

        assert result.code == ValidationCode.NONE
        assert result.valid is True

    def test_read_only_skips_pattern(self, contents):
        result = Entity({"createdAt": "not a date"}, contents).validate_field("createdAt")

        assert result.code == ValidationCode.NONE
        assert result.valid is True

    def test_not_allowed(self, contents):
        result = Entity({"type": "podcast"}, contents).validate_field("type")

        assert result.code == ValidationCode.NOT_ALLOWED
        assert result.message == "type is not one of movie, episode"

    def test_empty_allowed_values_reject_everything(self):
        descriptor = {**CONTENTS, "fields": {"type": {"type": "string", "allowedValueMappings": {}}}}
        entity = Entity({"type": "movie"}, make_endpoint(descriptor))

        assert entity.validate_field("type").code == ValidationCode.NOT_ALLOWED

    def test_allowed(self, contents):
        assert Entity({"type": "movie"}, contents).validate_field("type").valid

    def test_pattern_mismatch(self, contents):
        result = Entity({"name": "Not Valid"}, contents).validate_field("name")

        assert result.code == ValidationCode.INVALID_VALUE
        assert result.type_info.pattern == "^[a-z0-9-]+$"

    def test_map_accumulates_every_offending_key(self, contents):
        entity = Entity({"localisedTitle": {"english": "x", "en": "Bye", "de": "Hallo"}}, contents)

        result = entity.validate_field("localisedTitle")

        assert result.code == ValidationCode.INVALID_MAP
        assert "localisedTitle.english does not match" in result.message
        assert "localisedTitle.en is not one of Hello, Hi" in result.message
        assert "localisedTitle.de" not in result.message

    def test_valid_map(self, contents):
        entity = Entity({"localisedTitle": {"en": "Hi", "fr": "Salut"}}, contents)
        assert entity.validate_field("localisedTitle").valid

    def test_unbound_entity_cannot_validate(self):
        with pytest.raises(NoEndpointError):
            Entity({}).validate_field("title")


class TestValidate:

    def test_valid_entity_returns_self(self, contents):
        entity = contents.new_resource({"name": "x", "type": "movie"})

        assert entity.validate() is entity
        assert entity.errors == []

    def test_invalid_entity_raises_with_errors(self, contents):
        entity = contents.new_resource({"name": "Bad Name", "type": "podcast"})

        with pytest.raises(EntityValidationError) as exc_info:
            entity.validate()

        assert exc_info.value.entity is entity
        assert {e.field for e in entity.errors} == {"name", "type"}

    def test_errors_are_reset(self, contents):
        entity = contents.new_resource({"name": "Bad Name"})
        with pytest.raises(EntityValidationError):
            entity.validate()

        entity["name"] = "good-name"
        entity.validate()
        assert entity.errors == []


class TestLink:
    """Tests for relationship linking."""

    def test_direct_array_link_is_deduplicated(self, contents, categories):
        content = contents.new_resource({"name": "x"})
        category = categories.new_resource({"name": "drama"})

        content.link(category)
        content.link(category)

        assert content["categoryRefs"] == ["test:drama"]

    def test_direct_array_link_of_many(self, contents, categories):
        content = contents.new_resource({"name": "x"})
        drama = categories.new_resource({"name": "drama"})
        comedy = categories.new_resource({"name": "comedy"})

        content.link([drama, comedy])

        assert content["categoryRefs"] == ["test:drama", "test:comedy"]

    def test_direct_scalar_link_overwrites(self, contents, providers):
        content = contents.new_resource({"name": "x"})

        content.link([providers.new_resource({"name": "a"}), providers.new_resource({"name": "b"})])

        assert content["providerRef"] == "test:b"

    def test_link_by_relationship_name(self, contents, categories):
        content = contents.new_resource({"name": "x"})
        content.link(categories.new_resource({"name": "drama"}), as_="categories")
        assert content["categoryRefs"] == ["test:drama"]

    def test_indirect_link_writes_onto_target(self, contents, assets):
        content = contents.new_resource({"name": "x"})
        asset = assets.new_resource({"name": "poster"})

        assert content.link(asset) is content

        assert asset["contentRef"] == "test:x"
        assert "assets" not in content
        assert content.indirectly_linked_resources == [asset]

    def test_indirect_link_by_relationship_name(self, contents, assets):
        content = contents.new_resource({"name": "x"})
        asset = assets.new_resource({"name": "poster"})

        content.link(asset, as_="assets")

        assert asset["contentRef"] == "test:x"
        assert content.indirectly_linked_resources == [asset]

    def test_unknown_relationship_name(self, contents, categories):
        content = contents.new_resource({"name": "x"})
        with pytest.raises(RelationshipError):
            content.link(categories.new_resource({"name": "a"}), as_="nope")

    def test_unrelated_resource_type(self, contents):
        content = contents.new_resource({"name": "x"})
        other = contents.new_resource({"name": "y"})
        with pytest.raises(RelationshipError):
            content.link(other)

    def test_has_linked(self, contents):
        entity = Entity({"linked": {"assets": [{"ref": "a"}], "categories": []}}, contents)

        assert entity.has_linked("assets") is True
        assert entity.has_linked("categories") is False
        assert entity.has_linked("credits") is False

    def test_linked_of_type(self, contents):
        entity = Entity(
            {"linked": {"assets": [{"type": "image"}, {"type": "video"}]}},
            contents,
        )
        assert entity.linked_of_type("assets", "image") == [{"type": "image"}]
        assert entity.linked_of_type("categories", "image") == []


class TestLinkedAssets:
    """Tests for the linked asset shortcuts."""

    ASSETS = [
        {"ref": "i:1", "type": "image", "tags": ["landscape"]},
        {"ref": "i:2", "type": "image", "tags": ["usage:boxart"]},
        {"ref": "v:1", "type": "video", "tags": ["usage:trailer"], "fileFormat": "hls"},
        {"ref": "v:2", "type": "video", "tags": ["trailerondemand", "console:primary"]},
        {"ref": "v:3", "type": "video", "tags": ["feature"], "fileFormat": "dash"},
        {"ref": "v:4", "type": "video", "fileFormat": "hls"},
    ]

    @pytest.fixture
    def content(self, contents):
        return Entity({"ref": "t:1", "linked": {"assets": self.ASSETS}}, contents)

    def test_images_and_videos(self, content):
        assert [a["ref"] for a in content.images] == ["i:1", "i:2"]
        assert [a["ref"] for a in content.videos] == ["v:1", "v:2", "v:3", "v:4"]

    def test_untagged_videos_are_both_trailers_and_main_videos(self, content):
        assert [a["ref"] for a in content.trailers] == ["v:1", "v:2", "v:4"]
        assert [a["ref"] for a in content.main_videos] == ["v:3", "v:4"]

    def test_primary_images(self, content):
        assert content.primary_box_art()["ref"] == "i:2"
        assert content.primary_still()["ref"] == "i:1"

    def test_trailer_prefers_console_primary(self, content):
        assert content.trailer()["ref"] == "v:2"

    def test_main_video_by_format(self, content):
        assert content.main_video("dash")["ref"] == "v:3"
        assert content.main_video("hls")["ref"] == "v:4"
        assert content.main_video("mp4") is None

    def test_without_assets(self, contents):
        entity = Entity({"ref": "t:1"}, contents)

        assert entity.images == []
        assert entity.trailer() is None
        assert entity.primary_box_art() is None


class TestPersistence:

    async def test_new_entity_is_posted(self, contents, transport):
        transport.handler = stored("contents")
        entity = contents.new_resource({"name": "x", "title": "X"})

        result = await entity.save()

        method, url, body = transport.calls[0]
        assert method == "POST"
        assert url == "http://localhost/metadata/contents?owner=test"
        assert body == entity.serialise()
        assert result.ref == "test:x"
        assert result.is_new is False

    async def test_existing_entity_is_put(self, contents, transport):
        transport.handler = stored("contents")
        entity = Entity({"ref": "test:x", "name": "x"}, contents)

        await entity.save()

        assert transport.calls[0][:2] == ("PUT", "http://localhost/metadata/contents/test:x?owner=test")

    async def test_indirect_links_are_saved_first_and_cleared(self):
        transport = FakeTransport()
        transport.handler = lambda method, url, json: json
        contents = make_endpoint(CONTENTS, transport)
        assets = make_endpoint(ASSETS, transport)

        content = contents.new_resource({"name": "x"})
        asset = assets.new_resource({"name": "poster"})
        content.link(asset)

        await content.save()

        assert [url for _, url, _ in transport.calls] == [
            "http://localhost/metadata/assets?owner=test",
            "http://localhost/metadata/contents?owner=test",
        ]
        assert transport.calls[0][2]["assets"][0]["contentRef"] == "test:x"
        assert content.indirectly_linked_resources == []

    async def test_destroy(self, contents, transport):
        entity = Entity({"ref": "test:x"}, contents)

        assert await entity.destroy() == {}
        assert transport.calls == [
            ("DELETE", "http://localhost/metadata/contents/test:x?owner=test", None)
        ]

    @pytest.mark.parametrize("operation", ["save", "destroy"])
    async def test_unbound_entity_cannot_persist(self, operation):
        with pytest.raises(NoEndpointError):
            await getattr(Entity({"ref": "t:1"}), operation)()
