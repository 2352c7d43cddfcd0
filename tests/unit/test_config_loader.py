"""Unit tests for slug mapping validation and YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from sluggable.config import ConfigLoader
from sluggable.errors import ConfigurationError
from sluggable.handlers import HandlerRegistry
from tests.records import all_metadata


def _load(mapping: dict[str, Any]):
    return ConfigLoader.from_mapping(mapping, metadata=all_metadata())


def test_config_loader_from_mapping_applies_defaults_and_field_metadata() -> None:
    """Slug options should default sensibly and take length/nullability from metadata."""

    store = _load({"Article": {"slugs": {"slug": {"fields": "title, code", "style": "default"}}}})

    record_config = store.get("Article")
    assert record_config is not None
    slug_config = record_config.slug_config("slug")
    assert slug_config is not None
    assert slug_config.fields == ("title", "code")
    assert slug_config.separator == "-"
    assert slug_config.allowed == "a-z0-9"
    assert slug_config.style == "none"
    assert slug_config.updatable is True
    assert slug_config.unique is True
    assert slug_config.length == 64
    assert slug_config.nullable is False
    assert slug_config.is_identifier is False
    assert record_config.history is False
    assert "Article" in store
    assert store.record_types == ("Article",)


def test_config_loader_rejects_unmapped_slug_field() -> None:
    """A slug attribute missing from metadata should be reported with its class."""

    with pytest.raises(
        ConfigurationError,
        match=r"Unable to find slug \[permalink\] as mapped property in class - Article\.",
    ):
        _load({"Article": {"slugs": {"permalink": {"fields": ["title"]}}}})


def test_config_loader_rejects_non_sluggable_source_field() -> None:
    """Source fields of unsupported storage types should be rejected."""

    with pytest.raises(ConfigurationError, match=r"Cannot use field - \[deleted\] for slug storage"):
        _load({"Article": {"slugs": {"slug": {"fields": ["deleted"]}}}})


def test_config_loader_requires_at_least_one_source_field() -> None:
    """An empty field list should fail at load time."""

    with pytest.raises(ConfigurationError, match="Slug must contain at least one field"):
        _load({"Article": {"slugs": {"slug": {"fields": []}}}})


def test_config_loader_requires_unique_identifier_slug() -> None:
    """An identifier slug configured as non-unique should be rejected."""

    with pytest.raises(ConfigurationError, match=r"Identifier field - \[slug\] slug must be unique"):
        _load({"Tag": {"slugs": {"slug": {"fields": ["name"], "unique": False}}}})


def test_config_loader_rejects_unknown_unique_group() -> None:
    """Unique groups must name a field, an association or the discriminator."""

    with pytest.raises(ConfigurationError, match=r"Unable to find unique group \[tenant\]"):
        _load({"Page": {"slugs": {"slug": {"fields": ["title"], "unique_groups": ["tenant"]}}}})


def test_config_loader_rejects_unknown_style_and_keys() -> None:
    """Unsupported styles and unknown option keys should fail clearly."""

    with pytest.raises(ConfigurationError, match="Unsupported slug style `shouting`"):
        _load({"Article": {"slugs": {"slug": {"fields": ["title"], "style": "shouting"}}}})

    with pytest.raises(ConfigurationError, match=r"includes unsupported key\(s\): prefix\."):
        _load({"Article": {"slugs": {"slug": {"fields": ["title"], "prefix": "x"}}}})


def test_config_loader_rejects_invalid_boolean_option() -> None:
    """Non-boolean tokens for boolean options should be rejected."""

    with pytest.raises(ConfigurationError, match=r"Slug option \[updatable\], type is not valid"):
        _load({"Article": {"slugs": {"slug": {"fields": ["title"], "updatable": "sometimes"}}}})


def test_config_loader_rejects_unknown_handler_and_missing_handler_option() -> None:
    """Handler identifiers must be registered and their required options present."""

    with pytest.raises(ConfigurationError, match="Unsupported slug handler `tree`"):
        _load({"User": {"slugs": {"slug": {"fields": ["name"], "handlers": {"tree": {}}}}}})

    with pytest.raises(ConfigurationError, match=r"requires option \[relation_field\]"):
        _load({"User": {"slugs": {"slug": {"fields": ["name"], "handlers": {"relative": {}}}}}})


def test_config_loader_relative_handler_requires_association() -> None:
    """The relative handler should only accept association relation fields."""

    with pytest.raises(ConfigurationError, match=r"Unable to find slug relation through field - \[name\]"):
        _load(
            {
                "User": {
                    "slugs": {
                        "slug": {
                            "fields": ["name"],
                            "handlers": {"relative": {"relation_field": "name"}},
                        }
                    }
                }
            }
        )


def test_config_loader_uses_custom_registry() -> None:
    """A registry without built-in handlers should reject their identifiers."""

    with pytest.raises(ConfigurationError, match="registered: none"):
        ConfigLoader.from_mapping(
            {
                "User": {
                    "slugs": {
                        "slug": {
                            "fields": ["name"],
                            "handlers": {"relative": {"relation_field": "company"}},
                        }
                    }
                }
            },
            metadata=all_metadata(),
            registry=HandlerRegistry(),
        )


def test_config_loader_history_requires_single_identifier() -> None:
    """History tracking should require exactly one identifier field."""

    with pytest.raises(ConfigurationError, match="Slug history requires a single identifier"):
        ConfigLoader.from_mapping(
            {
                "Link": {
                    "metadata": {"fields": {"title": "string", "slug": "string"}},
                    "slugs": {"slug": {"fields": ["title"]}},
                    "history": True,
                }
            }
        )


def test_config_loader_from_yaml_parses_embedded_metadata(tmp_path: Path) -> None:
    """YAML mappings should carry metadata, handler options and history flags."""

    config_path = tmp_path / "slugs.yml"
    config_path.write_text(
        """
Post:
  metadata:
    identifier: [id]
    fields:
      id: integer
      title: {type: string, length: 32}
      slug: {type: string, length: 32, nullable: true}
    associations:
      blog: {target: Blog}
  history: yes
  slugs:
    slug:
      fields: [title]
      separator: "_"
      style: upper
      unique_groups: [blog]
      handlers:
        relative:
          relation_field: blog
          separator: ":"
""".strip(),
        encoding="utf-8",
    )

    store = ConfigLoader.from_yaml(config_path)

    record_config = store.get("Post")
    assert record_config is not None
    assert record_config.history is True
    assert record_config.metadata.identifier == ("id",)
    assert record_config.metadata.associations["blog"].target == "Blog"
    slug_config = record_config.slugs[0]
    assert slug_config.separator == "_"
    assert slug_config.style == "upper"
    assert slug_config.unique_groups == ("blog",)
    assert slug_config.length == 32
    assert slug_config.nullable is True
    assert slug_config.handler_options("relative")["separator"] == ":"


def test_config_loader_from_yaml_rejects_invalid_documents(tmp_path: Path) -> None:
    """Malformed YAML and non-mapping roots should raise configuration errors."""

    broken_path = tmp_path / "broken.yml"
    broken_path.write_text("Post: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="could not be parsed"):
        ConfigLoader.from_yaml(broken_path)

    list_path = tmp_path / "list.yml"
    list_path.write_text("- Post\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="must contain a top-level mapping"):
        ConfigLoader.from_yaml(list_path)


def test_config_loader_requires_metadata_source() -> None:
    """Record types without known or embedded metadata should fail."""

    with pytest.raises(ConfigurationError, match="has no metadata for record type `Ghost`"):
        ConfigLoader.from_mapping({"Ghost": {"slugs": {"slug": {"fields": ["title"]}}}})
