import math

import pytest

from backend.checkout.normalizer import (
    FIELD_ALIASES,
    Person,
    PersonList,
    normalize_item,
    parse_flag,
    parse_price,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("$1,234.50", 1234.5),
        ("", 0.0),
        (40, 40.0),
        ("abc", 0.0),
        (None, 0.0),
        (-5, 0.0),
        (math.nan, 0.0),
        (math.inf, 0.0),
        (True, 0.0),
        ({"price": 1}, 0.0),
        ("19.99", 19.99),
    ],
)
def test_parse_price(value, expected):
    assert parse_price(value) == expected


def test_alias_table_is_documented():
    assert FIELD_ALIASES["flyer_id"][0] == "flyer_id"
    assert "flyer_is" in FIELD_ALIASES["flyer_id"]
    assert FIELD_ALIASES["email"] == ("email", "userEmail", "user_email")


def test_identifier_aliases_first_non_empty_wins():
    item = normalize_item({"flyer_id": "", "flyer_is": "26", "userEmail": "a@b.c", "categoryId": 7})
    assert item.flyer_id == "26"
    assert item.email == "a@b.c"
    assert item.category_id == "7"


def test_identifiers_fall_back_to_payload_then_defaults():
    item = normalize_item({}, {"user_id": "u1", "email": "buyer@example.com"})
    assert item.user_id == "u1"
    assert item.email == "buyer@example.com"
    assert item.flyer_id == "1"
    assert item.category_id == "1"

    bare = normalize_item({})
    assert bare.user_id == ""
    assert bare.email == ""


def test_prices_resolve_across_aliases():
    item = normalize_item({" total_price": "$55.00"})
    assert item.total_price == 55.0
    assert item.subtotal == 55.0

    item = normalize_item({"total_price": 60, "subtotal": "50"})
    assert item.total_price == 60.0
    assert item.subtotal == 50.0


def test_date_truncated_to_date_portion():
    assert normalize_item({"event_date": "2025-06-01T20:00:00.000Z"}).event_date == "2025-06-01"
    assert normalize_item({"event_date": "2025-06-01"}).event_date == "2025-06-01"


def test_flag_defaults_and_coercion():
    item = normalize_item({})
    assert item.story_size_version is False
    assert item.custom_flyer is False
    assert item.animated_flyer is False
    assert item.instagram_post_size is True

    item = normalize_item({"instagram_post_size": False, "animated_flyer": "true", "custom_flyer": "1", "story_size_version": "0"})
    assert item.instagram_post_size is False
    assert item.animated_flyer is True
    assert item.custom_flyer is True
    assert item.story_size_version is False


def test_parse_flag_unknown_string_keeps_default():
    assert parse_flag("maybe", True) is True
    assert parse_flag("false", True) is False


@pytest.mark.parametrize(
    "raw, names",
    [
        (None, []),
        ("DJ Snake", ["DJ Snake"]),
        ({"name": "Host A"}, ["Host A"]),
        ({"name": {"name": "Wrapped"}}, ["Wrapped"]),
        ([{"name": "A"}, "B", None], ["A", "B"]),
    ],
)
def test_person_list_coercion(raw, names):
    assert [p.name for p in PersonList.coerce(raw)] == names


def test_people_keep_only_absolute_images():
    item = normalize_item(
        {
            "djs": [
                {"name": "A", "image": "https://cdn.example.com/a.png"},
                {"name": "B", "image": "data:image/png;base64,AAAA"},
                {"name": "C", "image_url": "/tmp/flyer-uploads/c.png"},
            ]
        }
    )
    assert item.djs.to_payload() == [
        {"name": "A", "image_url": "https://cdn.example.com/a.png"},
        {"name": "B"},
        {"name": "C"},
    ]


def test_sponsors_capped_at_three():
    item = normalize_item({"sponsors": ["a", "b", "c", "d"]})
    assert len(item.sponsors) == 3


def test_host_first_defaults_to_empty_person():
    assert normalize_item({}).host.first() == Person(name="")


def test_image_url_kept_only_when_absolute():
    assert normalize_item({"imageUrl": "https://cdn.example.com/f.png"}).image_url == "https://cdn.example.com/f.png"
    assert normalize_item({"image_url": "uploads/f.png"}).image_url is None


def test_delivery_time_default():
    assert normalize_item({}).delivery_time == "24 hours"
    assert normalize_item({"delivery_time": "5 hours"}).delivery_time == "5 hours"


def test_malformed_input_never_raises():
    for raw in (None, [], "text", 42, {"djs": 12, "temp_files": "x", "event_date": 20250101}):
        item = normalize_item(raw)
        assert item.flyer_id == "1"


def test_temp_files_keeps_string_paths():
    item = normalize_item({"temp_files": {"host_0": "/tmp/a.png", "dj_0": None, "sponsor_0": ""}})
    assert item.temp_files == {"host_0": "/tmp/a.png"}


def test_payload_round_trips_through_normalizer():
    item = normalize_item({"event_title": "Party", "djs": ["A"], "subtotal": 40, "temp_files": {"dj_0": "/x"}})
    again = normalize_item(item.to_payload())
    assert again == item
