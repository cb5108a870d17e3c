import pytest

from xkcd_wallpaper import ComicMetadata, format_filename


def make_metadata(**overrides) -> ComicMetadata:
    fields = dict(
        number=3084,
        title="Exoplanet Names",
        image_url="https://imgs.xkcd.com/comics/exoplanet_names.png",
        year="2025",
        month="06",
        day="20",
    )
    fields.update(overrides)
    return ComicMetadata(**fields)


def test_default_style_pattern(metadata):
    assert format_filename("./%y-%m-%d-%t.png", metadata) == "./2025-06-20-Exoplanet Names.png"


@pytest.mark.parametrize(
    "pattern, expected",
    [
        ("%y-%y-%t.png", "2025-2025-Foo.png"),
        ("%t-%y-%y.png", "Foo-2025-2025.png"),
        ("%z-%t", "%z-Foo"),
        ("%Y-%T", "%Y-%T"),
        ("%n.png", "3084.png"),
        ("wallpaper.png", "wallpaper.png"),
        ("out/%n/%d%m", "out/3084/2006"),
    ],
)
def test_placeholders(pattern, expected):
    assert format_filename(pattern, make_metadata(title="Foo")) == expected


def test_unknown_placeholder_kept_next_to_title():
    assert format_filename("%z-%t", make_metadata(title="Bar")) == "%z-Bar"


def test_title_used_verbatim():
    assert format_filename("%t", make_metadata(title="Rock/Paper %y %n")) == "Rock/Paper %y %n"


def test_number_is_not_padded():
    assert format_filename("%n", make_metadata(number=7)) == "7"
