"""Tests for paginated regular-expression search."""
import json

import pytest

from privx_toolkit.secrets.domains.errors import (
    InvalidFilterError,
    ParameterNotImplementedError,
    SecretDataMissingError,
    VaultError,
)
from privx_toolkit.secrets.domains.models import ConversionStrategy, FindName, FindRef
from privx_toolkit.secrets.workflows.search import PAGE_SIZE, find_all

from conftest import FakeVault


def namespace(count):
    """Secrets named foo-000, bar-001, foo-002, ... alternating prefixes."""
    docs = {}
    for i in range(count):
        prefix = "foo" if i % 2 == 0 else "bar"
        docs[f"{prefix}-{i:03d}"] = {"index": i}
    return docs


class TestFindAll:

    def test_pages_through_whole_namespace(self):
        vault = FakeVault(namespace(250))

        results = find_all(vault, FindRef(name=FindName(regexp="^foo")))

        assert vault.list_calls == [(0, PAGE_SIZE), (100, PAGE_SIZE), (200, PAGE_SIZE)]
        assert len(results) == 125
        assert all(name.startswith("foo") for name in results)
        assert json.loads(results["foo-010"]) == {"index": 10}

    def test_only_matching_entries_are_fetched(self):
        vault = FakeVault(namespace(10))

        find_all(vault, FindRef(name=FindName(regexp="^bar")))

        assert sorted(vault.get_calls) == ["bar-001", "bar-003", "bar-005", "bar-007", "bar-009"]

    def test_exact_page_multiple_needs_one_empty_page(self):
        vault = FakeVault(namespace(200))

        find_all(vault, FindRef())

        assert [offset for offset, _ in vault.list_calls] == [0, 100, 200]

    def test_empty_namespace(self):
        vault = FakeVault()

        assert find_all(vault, FindRef()) == {}
        assert vault.list_calls == [(0, PAGE_SIZE)]

    @pytest.mark.parametrize("ref", [FindRef(), FindRef(name=FindName()), FindRef(name=FindName(regexp=""))])
    def test_missing_filter_matches_all(self, ref):
        vault = FakeVault(namespace(5))

        assert set(find_all(vault, ref)) == set(vault.documents)

    def test_pattern_is_unanchored(self):
        vault = FakeVault({"prod-db": {"a": 1}, "dev-db": {"a": 2}, "prod-web": {"a": 3}})

        assert set(find_all(vault, FindRef(name=FindName(regexp="db")))) == {"prod-db", "dev-db"}

    def test_value_is_whole_document_json(self):
        vault = FakeVault({"app": {"a": 1, "b": {"c": "x"}}})

        assert find_all(vault, FindRef()) == {"app": b'{"a":1,"b":{"c":"x"}}'}

    def test_custom_page_size(self):
        vault = FakeVault(namespace(5))

        find_all(vault, FindRef(), page_size=2)

        assert vault.list_calls == [(0, 2), (2, 2), (4, 2)]

    @pytest.mark.parametrize("ref, parameter", [
        (FindRef(path="/some/path"), "ref.Path"),
        (FindRef(tags={"env": "prod"}), "ref.Tags"),
        (FindRef(tags={}), "ref.Tags"),
        (FindRef(conversion_strategy=ConversionStrategy.UNICODE), "ref.ConversionStrategy"),
    ])
    def test_unsupported_parameters_fail_before_any_call(self, ref, parameter):
        vault = FakeVault(namespace(5))

        with pytest.raises(ParameterNotImplementedError) as exc_info:
            find_all(vault, ref)

        assert exc_info.value.parameter == parameter
        assert parameter in str(exc_info.value)
        assert isinstance(exc_info.value, NotImplementedError)
        assert vault.list_calls == []

    def test_invalid_regex_fails_before_any_call(self):
        vault = FakeVault(namespace(5))

        with pytest.raises(InvalidFilterError) as exc_info:
            find_all(vault, FindRef(name=FindName(regexp="foo(")))

        assert "foo(" in str(exc_info.value)
        assert vault.list_calls == []

    def test_missing_data_aborts_search(self):
        vault = FakeVault({"a": {"x": 1}, "b": None})

        with pytest.raises(SecretDataMissingError):
            find_all(vault, FindRef())

    def test_page_failure_aborts_search(self):
        vault = FakeVault(namespace(250))
        vault.fail_list_at = 100

        with pytest.raises(VaultError):
            find_all(vault, FindRef())

        assert len(vault.list_calls) == 2
