"""Tests for the unit filter and emitter."""
from minrepro.reaper.emitter import UnitEmitter, is_empty_unit

from support import parse_unit


def emptied(relative_path, source):
    """Parse a unit and remove every member of every type."""
    unit = parse_unit(relative_path, source)
    for type_decl in unit.types:
        for member in list(type_decl.members):
            type_decl.remove(member)
    return unit


class TestEmptyUnits:
    def test_package_and_empty_types_only(self):
        unit = emptied('p/A.java', "package p;\n// comment\nclass A { void a() {} }\nclass B {}\n")
        assert is_empty_unit(unit)

    def test_imports_force_retention(self):
        unit = emptied('p/A.java', "package p;\nimport java.util.List;\nclass A { void a() {} }\n")
        assert not is_empty_unit(unit)

    def test_enum_constants_count_as_members(self):
        assert not is_empty_unit(parse_unit('p/E.java', "package p;\nenum E { ONE }\n"))

    def test_nested_type_keeps_the_enclosing_type(self):
        unit = parse_unit('p/O.java', "package p;\nclass O { static class I {} }\n")
        assert not is_empty_unit(unit)

    def test_non_empty_type(self):
        assert not is_empty_unit(parse_unit('p/A.java', "package p;\nclass A { int x; }\n"))


class TestEmit:
    def test_units_are_mirrored_and_empty_ones_dropped(self, tmp_path):
        kept = parse_unit('com/example/Kept.java', "package com.example;\nclass Kept { int x; }\n")
        empty = emptied('com/example/Gone.java', "package com.example;\nclass Gone { int y; }\n")

        report = UnitEmitter(tmp_path / 'out').emit([kept, empty])

        written = tmp_path / 'out' / 'com' / 'example' / 'Kept.java'
        assert report.written == [written]
        assert written.read_bytes() == kept.source
        assert [p.as_posix() for p in report.skipped] == ['com/example/Gone.java']
        assert not (tmp_path / 'out' / 'com' / 'example' / 'Gone.java').exists()

    def test_write_failure_is_recorded_and_skipped(self, tmp_path):
        out = tmp_path / 'out'
        out.mkdir()
        (out / 'blocked').write_text('a file where a directory is needed')

        failing = parse_unit('blocked/A.java', "class A { int x; }\n")
        fine = parse_unit('ok/B.java', "class B { int y; }\n")
        report = UnitEmitter(out).emit([failing, fine])

        assert [f.relative_path.as_posix() for f in report.failures] == ['blocked/A.java']
        assert report.failures[0].error
        assert report.written == [out / 'ok' / 'B.java']
