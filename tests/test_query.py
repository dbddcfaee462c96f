"""Tests for bracket-notation query encoding."""

from __future__ import annotations

from datetime import date, datetime

from parasut_mcp.query import (
    MAX_PAGE_SIZE,
    build_list_query,
    build_show_query,
    build_url,
    parse_query,
    query,
    serialize_query,
    serialize_value,
)


def test_serialize_value_formats_scalars() -> None:
    assert serialize_value(None) is None
    assert serialize_value(True) == "true"
    assert serialize_value(False) == "false"
    assert serialize_value(42) == "42"
    assert serialize_value(date(2024, 1, 5)) == "2024-01-05"
    assert serialize_value(datetime(2024, 1, 5, 13, 45)) == "2024-01-05"
    assert serialize_value(["contact", "details"]) == "contact,details"


def test_build_list_query_flattens_params_and_drops_none() -> None:
    """Given filters with a None value, when the list query is built,
    then the None filter is omitted rather than sent empty."""
    built = build_list_query(
        {
            "filter": {"name": "Acme", "email": None, "archived": False},
            "page": {"number": 2, "size": 10},
            "include": ["contact", "details"],
            "sort": "-issue_date",
        }
    )

    assert built == {
        "filter[name]": "Acme",
        "filter[archived]": "false",
        "page[number]": "2",
        "page[size]": "10",
        "include": "contact,details",
        "sort": "-issue_date",
    }


def test_page_size_is_capped_at_server_maximum() -> None:
    built = build_list_query({"page": {"size": 100}})
    assert built["page[size]"] == str(MAX_PAGE_SIZE)


def test_empty_params_produce_empty_query_string() -> None:
    assert build_list_query(None) == {}
    assert serialize_query(build_list_query({})) == ""
    assert build_show_query({}) == {}
    assert build_show_query({"include": ["contact"]}) == {"include": "contact"}


def test_serialize_query_percent_encodes_brackets() -> None:
    encoded = serialize_query({"filter[name]": "Acme Ltd", "page[number]": 2})
    assert encoded == "?filter%5Bname%5D=Acme+Ltd&page%5Bnumber%5D=2"


def test_parse_query_inverts_the_encoder() -> None:
    params = {
        "filter": {"name": "Çağrı & Co", "issue_date": "2024-03-01"},
        "page": {"number": 3, "size": 25},
        "include": ["contact", "active_e_document"],
    }

    decoded = parse_query(serialize_query(build_list_query(params)))

    assert decoded == {
        "filter": {"name": "Çağrı & Co", "issue_date": "2024-03-01"},
        "page": {"number": 3, "size": 25},
        "include": "contact,active_e_document",
    }


def test_build_url_joins_base_path_and_query() -> None:
    url = build_url("https://api.parasut.com/v4/", "/1/contacts", {"page[size]": 5})
    assert url == "https://api.parasut.com/v4/1/contacts?page%5Bsize%5D=5"


def test_query_builder_chains() -> None:
    builder = (
        query()
        .filter("payment_status", "overdue")
        .filters({"contact_id": 7})
        .page(2, 50)
        .include("contact")
        .include("details")
        .sort_desc("issue_date")
    )

    assert builder.build() == {
        "filter[payment_status]": "overdue",
        "filter[contact_id]": "7",
        "page[number]": "2",
        "page[size]": "25",
        "include": "contact,details",
        "sort": "-issue_date",
    }
    assert builder.reset().build() == {}
