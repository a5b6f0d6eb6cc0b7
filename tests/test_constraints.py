import logging
from pathlib import Path

import pytest

from image_sieve.exceptions import ConstraintSpecError
from image_sieve.filters.constraints import (
    ChannelConstraint,
    DimensionConstraint,
    FilterSet,
    FormatConstraint,
    RejectAll,
    SizeConstraint,
    ValidityConstraint,
    parse_constraint,
    parse_filters,
)
from image_sieve.models import Metadata, Stage

MIB = 1024 * 1024


def meta(width=None, height=None, size=None, mode=None, name="img.png", error=None):
    return Metadata(path=Path(name), size_bytes=size, width=width, height=height, mode=mode, decode_error=error)


def test_keywords():
    assert parse_constraint("png") == FormatConstraint("png")
    assert parse_constraint("JPEG") == FormatConstraint("jpg")
    assert parse_constraint("grey") == ChannelConstraint("gray")
    assert parse_constraint("rgba") == ChannelConstraint("rgba")
    assert parse_constraint("valid") == ValidityConstraint(True)
    assert parse_constraint("invalid") == ValidityConstraint(False)
    assert parse_constraint("!png") == FormatConstraint("png", negate=True)


@pytest.mark.parametrize("expr,expected", [
    ("filesize>10M", 10 * MIB),
    ("filesize>10.5M", int(10.5 * MIB)),
    ("filesize==300K", 300 * 1024),
    ("filesize<50B", 50),
    ("size<=2kib", 2048),
    ("filesize>1g", 1024 * MIB),
    ("filesize>123", 123),
])
def test_size_units_normalize_to_bytes(expr, expected):
    c = parse_constraint(expr)
    assert isinstance(c, SizeConstraint)
    assert c.value == expected


def test_size_boundary_is_strict():
    c = parse_constraint("size>10M")
    assert not c.matches(meta(size=10 * MIB))
    assert c.matches(meta(size=10 * MIB + 1))
    assert not c.matches(meta(size=10))


def test_short_and_long_edges():
    short = parse_constraint("short<512")
    assert short.matches(meta(400, 800))
    assert not short.matches(meta(600, 800))

    long = parse_constraint("long>=800")
    assert long.matches(meta(600, 800))
    assert not long.matches(meta(600, 799))


@pytest.mark.parametrize("op,value,expected", [
    ("==", 640, True), (">", 639, True), (">=", 640, True),
    ("<", 640, False), ("<=", 640, True), (">", 640, False),
])
def test_width_operators(op, value, expected):
    c = DimensionConstraint("width", op, value)
    assert c.matches(meta(640, 480)) is expected


def test_negation_flips_result():
    c = parse_constraint("!height>100")
    assert c.matches(meta(10, 50))
    assert not c.matches(meta(10, 500))


def test_missing_field_never_matches_even_when_negated():
    assert not parse_constraint("width<100").matches(meta())
    assert not parse_constraint("!width<100").matches(meta())


def test_format_uses_extension():
    c = parse_constraint("jpg")
    assert c.matches(meta(name="a.JPG"))
    assert c.matches(meta(name="a.jpeg"))
    assert not c.matches(meta(name="a.png"))


def test_channel_and_validity():
    assert parse_constraint("gray").matches(meta(mode="L"))
    assert not parse_constraint("gray").matches(meta(mode="RGB"))
    assert parse_constraint("invalid").matches(meta(error="broken"))
    assert not parse_constraint("valid").matches(meta(error="broken"))
    assert parse_constraint("valid").matches(meta())


@pytest.mark.parametrize("expr", [
    "", "!", "width=5", "width!=5", "depth>5", "width>5px",
    "width>5.5", "filesize>5x", "filesize>", "bogus",
])
def test_malformed_expressions_raise(expr):
    with pytest.raises(ConstraintSpecError):
        parse_constraint(expr)


def test_strict_parse_is_fatal():
    with pytest.raises(ConstraintSpecError) as exc:
        parse_filters(["png", "width=>5"])
    assert exc.value.expression == "width=>5"


def test_lenient_parse_fails_closed_and_warns_once(caplog):
    with caplog.at_level(logging.WARNING):
        filters = parse_filters(["png", "nonsense"], strict=False)

    assert len(filters) == 2
    assert isinstance(filters.constraints[1], RejectAll)
    assert not filters.constraints[1].matches(meta())
    assert sum("nonsense" in r.getMessage() for r in caplog.records) == 1


def test_filter_set_stage():
    assert FilterSet().stage is None
    assert parse_filters(["png"]).stage == Stage.PATH
    assert parse_filters(["png", "filesize>1k"]).stage == Stage.STAT
    assert parse_filters(["short<5", "filesize>1k"]).stage == Stage.HEADER
    assert parse_filters(["valid"]).stage == Stage.CONTENT

    fs = parse_filters(["png", "rgb", "width>1"])
    assert fs.needs(Stage.HEADER)
    assert not fs.needs(Stage.STAT)
    assert len(fs.at_stage(Stage.HEADER)) == 2


def test_describe():
    assert parse_filters([]).describe() == "(none)"
    assert parse_filters(["!png", "short<512"]).describe() == "!png short<512"
