import pytest

from xkcd_wallpaper import ComicMetadata


@pytest.fixture
def metadata() -> ComicMetadata:
    return ComicMetadata(
        number=3084,
        title="Exoplanet Names",
        image_url="https://imgs.xkcd.com/comics/exoplanet_names.png",
        year="2025",
        month="06",
        day="20",
    )


@pytest.fixture
def api_payload() -> dict:
    return {
        "num": 3084,
        "safe_title": "Exoplanet Names",
        "img": "https://imgs.xkcd.com/comics/exoplanet_names.png",
        "year": "2025",
        "month": "6",
        "day": "20",
        "title": "Exoplanet Names",
        "alt": "",
    }
