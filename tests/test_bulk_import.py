# tests/test_bulk_import.py
from datetime import datetime, timezone

import pytest

from shared.config import config
from backend.errors import EntityValidationError
from backend.services.bulk_import import BulkImporter, transform_place
from tests.factories import FakeRemoteRepository

PLACE = {
    "title": " Crate Cafe ",
    "placeId": "ChIJ1234567890abcdef",
    "categoryName": "Кафе",
    "totalScore": 4.6,
    "reviewsCount": 2100,
    "address": "Jl. Canggu Padang Linjong",
    "neighborhood": "Canggu",
    "city": "Kuta Utara",
    "phone": "+62 361 123",
    "location": {"lat": -8.6478, "lng": 115.1385},
    "placesTags": ["coffee", "breakfast"],
    "openingHours": [
        {"day": "Monday", "hours": "7 AM to 3 PM"},
        {"day": "Sunday", "hours": "Closed"},
    ],
    "additionalInfo": {"Услуги": [{"Wi-Fi": True}]},
    "imageUrls": [f"{i}.jpg" for i in range(30)],
    "reviews": [
        {"name": "Made", "stars": 5, "text": "Супер", "publishedAtDate": "2025-01-01T00:00:00Z"},
        {"name": "Bob", "stars": 9, "textTranslated": "Too many stars"},
    ],
}


def test_transform_place():
    data = transform_place(PLACE)

    assert data["id"] == "place-90abcdef"
    assert data["place_id"] == PLACE["placeId"]
    assert data["title"] == "Crate Cafe"
    assert data["status"] == "unverified"
    assert data["area"] == "Canggu"
    assert data["location_lat"] == -8.6478
    assert data["tags"] == ["coffee", "breakfast"]
    assert data["opening_hours"]["monday"] == {"open": "07:00", "close": "15:00", "closed": False}
    assert data["opening_hours"]["sunday"]["closed"] is True
    assert len(data["gallery"]) == config.BULK_IMAGES_LIMIT
    assert data["image_url"] == "0.jpg"
    assert data["images_count"] == config.BULK_IMAGES_LIMIT
    assert data["phone_unformatted"] == "+62361123"

    made, bob = data["reviews"]
    assert made["rating"] == 5
    assert made["published_at"] == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert bob["rating"] is None
    assert bob["text"] == "Too many stars"


def test_transform_place_fallbacks():
    data = transform_place({"title": "Tiny", "city": "Ubud", "categories": ["Spa"], "location": "bad"})

    assert data["id"].startswith("entity-")
    assert data["place_id"] is None
    assert data["area"] == "Ubud"
    assert data["tags"] == ["Spa"]
    assert data["location_lat"] is None
    assert data["opening_hours"] is None
    assert data["gallery"] == []
    assert data["images_count"] == 0
    assert data["reviews"] == []


@pytest.mark.parametrize("place", [{"placeId": "x"}, {"title": "  "}, "junk"])
def test_transform_place_rejects_untitled(place):
    with pytest.raises(EntityValidationError):
        transform_place(place)


@pytest.mark.asyncio
async def test_import_continues_after_failures():
    repository = FakeRemoteRepository()
    importer = BulkImporter(repository)

    result = await importer.import_places([
        PLACE,
        {"placeId": "no-title"},
        {"title": "boom"},
        {"title": "Second", "placeId": "abc"},
    ])

    assert result.success
    assert result.processed == 4
    assert result.succeeded == 2
    assert result.failed == 2
    assert result.errors[0].startswith("Unknown: ")
    assert result.errors[1].startswith("boom: ")
    assert [item["title"] for item in repository.imported] == ["Crate Cafe", "Second"]
