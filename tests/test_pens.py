"""Tests for pen vocabulary, YAML pen overrides and style resolution."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from rmoverlay.pens import (
    PenConfig,
    PenOverride,
    StyleConfigError,
    StyleResolver,
    UnknownPenTally,
    classify_width,
    derive_override,
    load_pen_config,
    lookup_kind,
    normalize_kind,
    pen_config_from_mapping,
    resolve_style,
)
from rmoverlay.pens.styles import BASE_STYLES, PEN_KINDS

PENS_YAML = """\
all:
  - pen:     fineliner
    weight:  narrow
    width:   0.95
    color:   black
    opacity: 0.9
  - pen:     ballpoint
    weight:  standard
    width:   2.0
    color:   "#963387"

1:
  - pen:     fineliner
    weight:  standard
    width:   0.8
    color:   blue
    opacity: 0.8
"""


@pytest.fixture()
def pens_file(tmp_path: Path) -> Path:
    path = tmp_path / "pens.yaml"
    path.write_text(PENS_YAML, encoding="utf-8")
    return path


@pytest.fixture()
def config(pens_file: Path) -> PenConfig:
    return load_pen_config(pens_file)


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------


class TestVocabulary:
    @pytest.mark.parametrize(
        "code, kind",
        [(2, "pen"), (17, "pen"), (3, "marker"), (16, "marker"), (4, "fineliner"),
         (5, "highlighter"), (18, "highlighter"), (6, "eraser"), (8, "erase-area"),
         (7, "sharp-pencil"), (12, "paint"), (13, "mechanical-pencil"), (14, "pencil"),
         (15, "ballpoint")],
    )
    def test_pen_codes(self, code: int, kind: str) -> None:
        assert lookup_kind(code) == kind

    def test_unknown_code(self) -> None:
        assert lookup_kind(99) is None

    def test_every_kind_has_a_base_style(self) -> None:
        assert set(PEN_KINDS) <= set(BASE_STYLES)

    @pytest.mark.parametrize(
        "raw, weight",
        [(1.875, "narrow"), (1.8751, "narrow"), (2.0, "standard"), (2.125, "broad"),
         (2.3, "standard"), (1.5, "standard")],
    )
    def test_classify_width(self, raw: float, weight: str) -> None:
        assert classify_width(raw) == weight

    def test_normalize_kind(self) -> None:
        assert normalize_kind("Mechanical Pencil") == "mechanical-pencil"
        assert normalize_kind("erase_area") == "erase-area"
        assert normalize_kind("highligher") == "highlighter"

    def test_base_widths(self) -> None:
        fineliner = BASE_STYLES["fineliner"]
        assert fineliner.width_for("narrow") == pytest.approx(0.60)
        assert fineliner.width_for("standard") == pytest.approx(0.85)
        assert fineliner.width_for("broad") == pytest.approx(1.20)


class TestUnknownPenTally:
    def test_counts_and_summary(self, caplog) -> None:
        tally = UnknownPenTally()
        for code in (21, 9, 21):
            tally.record(code)
        assert tally[21] == 2
        assert tally.summary() == "code 9 (x1), code 21 (x2)"
        with caplog.at_level(logging.WARNING, logger="rmoverlay.pens.styles"):
            tally.report()
        assert "code 21 (x2)" in caplog.text

    def test_empty_report_is_silent(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="rmoverlay.pens.styles"):
            UnknownPenTally().report()
        assert caplog.text == ""


# ---------------------------------------------------------------------------
# Configuration loading
# ---------------------------------------------------------------------------


class TestPenConfigLoading:
    def test_load(self, config: PenConfig) -> None:
        assert set(config.layers) == {"all", "1"}
        narrow = config.layers["all"][0]
        assert narrow.pen == "fineliner"
        assert narrow.weight == "narrow"
        assert narrow.color == (0, 0, 0)
        assert narrow.opacity == pytest.approx(0.9)

    def test_opacity_defaults_to_one(self, config: PenConfig) -> None:
        assert config.layers["all"][1].opacity == 1.0
        assert config.layers["all"][1].color == (150, 51, 135)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(StyleConfigError, match="not found"):
            load_pen_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("all: [pen: {", encoding="utf-8")
        with pytest.raises(StyleConfigError):
            load_pen_config(path)

    def test_empty_file_is_empty_config(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_pen_config(path).is_empty

    @pytest.mark.parametrize(
        "entry, message",
        [
            ({"pen": "crayon", "weight": "narrow", "width": 1}, "pen type"),
            ({"pen": "pen", "weight": "huge", "width": 1}, "weight"),
            ({"pen": "pen", "weight": "narrow", "width": 1, "opacity": 1.5}, "opacity"),
            ({"pen": "pen", "weight": "narrow", "width": 31}, "width"),
            ({"pen": "pen", "weight": "narrow", "width": -1}, "width"),
            ({"pen": "pen", "weight": "narrow", "width": 1, "color": "notacolour"}, "colour"),
            ({"pen": "fineliner", "width": 1, "color": [300, 0, 0]}, "colour"),
            ({"pen": "fineliner", "width": 1, "color": [0, -1, 0]}, "colour"),
            ({"pen": "fineliner", "width": 1, "color": [255, 0]}, "colour"),
        ],
    )
    def test_invalid_entries(self, entry: dict, message: str) -> None:
        with pytest.raises(StyleConfigError, match=message):
            pen_config_from_mapping({"all": [entry]})

    def test_colour_as_rgb_list(self) -> None:
        config = pen_config_from_mapping({"all": [{"pen": "fineliner", "width": 1, "color": [0, 128, 255]}]})
        assert config.layers["all"][0].color == (0, 128, 255)

    def test_invalid_layer_key(self) -> None:
        with pytest.raises(StyleConfigError, match="layer"):
            pen_config_from_mapping({"first": []})

    def test_spaced_kind_names(self) -> None:
        config = pen_config_from_mapping(
            {"all": [{"pen": "mechanical pencil", "weight": "broad", "width": 3}]}
        )
        assert config.layers["all"][0].pen == "mechanical-pencil"


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class TestGetPen:
    def test_exact_match_on_layer(self, config: PenConfig) -> None:
        pen = config.get_pen(1, "fineliner", "standard")
        assert pen is not None
        assert pen.width == pytest.approx(0.8)

    def test_unlisted_layer_uses_all(self, config: PenConfig) -> None:
        pen = config.get_pen(2, "fineliner", "narrow")
        assert pen is not None
        assert pen.width == pytest.approx(0.95)

    def test_listed_layer_does_not_fall_back_to_all(self, config: PenConfig) -> None:
        assert config.get_pen(1, "ballpoint", "standard") is None

    def test_standard_request_has_no_fallback(self, config: PenConfig) -> None:
        assert config.get_pen(2, "fineliner", "standard") is None

    def test_narrow_derived_from_standard(self, config: PenConfig) -> None:
        pen = config.get_pen(1, "fineliner", "narrow")
        assert pen is not None
        assert pen.weight == "narrow"
        assert pen.width == pytest.approx(0.8 * 1.875 / 2.0)
        assert pen.opacity == pytest.approx(0.8)
        assert pen.color == (0, 0, 255)

    def test_broad_derived_from_standard(self, config: PenConfig) -> None:
        pen = config.get_pen(3, "ballpoint", "broad")
        assert pen.width == pytest.approx(2.0 * 2.125 / 2.0)

    def test_unknown_kind(self, config: PenConfig) -> None:
        assert config.get_pen(1, "marker", "narrow") is None

    def test_lookups_are_cached(self, config: PenConfig) -> None:
        assert config.get_pen(1, "fineliner", "narrow") is config.get_pen(1, "fineliner", "narrow")

    def test_derive_override_keeps_entry(self) -> None:
        entry = PenOverride(pen="pen", weight="standard", width=4.0, opacity=0.5)
        derived = derive_override("narrow", entry)
        assert derived.width == pytest.approx(3.75)
        assert entry.width == 4.0
        assert derived.opacity == 0.5


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestResolveStyle:
    def test_base_style(self) -> None:
        style = resolve_style("highlighter", 2.0, 1)
        assert style.width == pytest.approx(15.0 * 0.85)
        assert style.opacity == pytest.approx(0.4)
        assert style.color == (0, 0, 255)
        assert style.allow_color_override

    def test_override_width_and_opacity(self, config: PenConfig) -> None:
        style = resolve_style("fineliner", 1.875, 2, pen_config=config)
        assert style.width == pytest.approx(0.95)
        assert style.opacity == pytest.approx(0.9)
        assert style.color == (0, 0, 0)

    def test_layer_colour_wins_for_overridable_kinds(self, config: PenConfig) -> None:
        style = resolve_style("fineliner", 1.875, 2, pen_config=config, layer_color=(255, 0, 0))
        assert style.color == (255, 0, 0)

    def test_layer_colour_ignored_for_fixed_kinds(self) -> None:
        style = resolve_style("ballpoint", 2.0, 1, layer_color=(255, 0, 0))
        assert style.color == (112, 128, 144)

    def test_override_colour_is_forced(self, config: PenConfig) -> None:
        style = resolve_style("ballpoint", 2.0, 2, pen_config=config, layer_color=(255, 0, 0))
        assert style.color == (150, 51, 135)


class TestStyleResolver:
    def test_unknown_codes_fall_back_and_are_tallied(self) -> None:
        tally = UnknownPenTally()
        resolver = StyleResolver(unknown_pens=tally)
        assert resolver.kind_of(42) == "fineliner"
        assert resolver.kind_of(2) == "pen"
        assert dict(tally) == {42: 1}

    def test_layer_colours_by_number(self) -> None:
        resolver = StyleResolver(layer_colors=[None, (255, 0, 0)])
        assert resolver.resolve("pen", 2.0, 1).color == (0, 0, 0)
        assert resolver.resolve("pen", 2.0, 2).color == (255, 0, 0)
        assert resolver.resolve("pen", 2.0, 3).color == (0, 0, 0)

    def test_results_are_cached(self) -> None:
        resolver = StyleResolver()
        assert resolver.resolve("pen", 2.0, 1) is resolver.resolve("pen", 2.0001, 1)
