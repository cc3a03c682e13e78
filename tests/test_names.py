"""Tests for qualified-name tracking and specifier derivation."""
import pytest

from minrepro.analyzer.names import QualifiedNameTracker, derive_specifier, normalize_specifier
from minrepro.errors import InternalConsistencyError

from support import parse_unit


class TestQualifiedNameTracker:
    def test_nested_names_compose_and_restore(self):
        tracker = QualifiedNameTracker('com.example')
        tracker.enter_top_level('Outer')
        assert tracker.current == 'com.example.Outer'

        tracker.enter_nested('Inner')
        assert tracker.current == 'com.example.Outer.Inner'
        tracker.enter_nested('Deeper')
        assert tracker.current == 'com.example.Outer.Inner.Deeper'

        tracker.exit()
        assert tracker.current == 'com.example.Outer.Inner'
        tracker.exit()
        assert tracker.current == 'com.example.Outer'
        tracker.exit()
        assert not tracker.active

    def test_default_package(self):
        tracker = QualifiedNameTracker()
        tracker.enter_top_level('A')
        assert tracker.current == 'A'

    def test_second_top_level_while_active_is_a_defect(self):
        tracker = QualifiedNameTracker('p')
        tracker.enter_top_level('A')
        with pytest.raises(InternalConsistencyError):
            tracker.enter_top_level('B')

    def test_nested_without_enclosing_type_is_a_defect(self):
        with pytest.raises(InternalConsistencyError):
            QualifiedNameTracker('p').enter_nested('Inner')

    def test_exit_without_enter_is_a_defect(self):
        with pytest.raises(InternalConsistencyError):
            QualifiedNameTracker('p').exit()

    def test_sibling_top_level_types_after_exit(self):
        tracker = QualifiedNameTracker('p')
        tracker.enter_top_level('A')
        tracker.exit()
        tracker.enter_top_level('B')
        assert tracker.current == 'p.B'


class TestSpecifiers:
    SOURCE = """
        package p;

        import java.util.Map;

        class T {
            T(int x) {}

            void a(final Map<String, Integer> m, int[] xs, String... rest) {}

            void b(@Deprecated String s, int grid[][]) {}

            void c() {}
        }
        """

    def _specifiers(self):
        unit = parse_unit('p/T.java', self.SOURCE)
        type_decl = unit.types[0]
        return [derive_specifier(type_decl.qualified_name, m.node) for m in type_decl.members]

    def test_declaration_specifiers(self):
        assert self._specifiers() == [
            'p.T#T(int)',
            'p.T#a(Map<String,Integer>,int[],String...)',
            'p.T#b(String,int[][])',
            'p.T#c()',
        ]

    def test_normalization_removes_whitespace(self):
        assert normalize_specifier('p.T#a(Map<String, Integer>, int[], String...)') == \
            'p.T#a(Map<String,Integer>,int[],String...)'
        assert normalize_specifier(' p.T#c( ) ') == 'p.T#c()'
