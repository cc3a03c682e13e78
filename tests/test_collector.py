"""Tests for target location and Root/Used collection."""
import pytest

from minrepro.analyzer.collector import TargetCollector, collect_targets, declared_specifiers
from minrepro.errors import AmbiguousTargetError, TargetNotFoundError

from support import build

HOST = """
    package p;

    public class Host {
        private int hits;

        void target() {
            class Local {
                void go() { alpha(); }
            }
            Runnable r = new Runnable() {
                public void run() { beta(); }
            };
            Runnable l = () -> gamma();
            new Local().go();
            hits++;
        }

        void alpha() {}
        void beta() {}
        void gamma() {}

        void after() { delta(); }
        void delta() {}

        static class Nested {
            void inner() { new Host().delta(); }
        }
    }
    """


def collect(files, specifiers):
    units, resolver = build(files)
    return collect_targets(units, specifiers, resolver)


class TestLocation:
    def test_fatal_on_miss_reports_exactly_the_missing_specifiers(self):
        result = collect({'A.java': 'class A { void m() {} }'}, ['A#m()', 'B#x()'])
        assert result.unmatched == ['B#x()']
        assert result.root == {'A#m()'}
        assert not result.ok
        with pytest.raises(TargetNotFoundError) as excinfo:
            result.raise_for_unmatched()
        assert excinfo.value.unmatched == ['B#x()']

    def test_all_unmatched_are_reported_together_in_caller_order(self):
        result = collect({'A.java': 'class A { void m() {} }'}, ['Z#z()', 'A#m()', 'B#x()'])
        assert result.unmatched == ['Z#z()', 'B#x()']

    def test_specifier_whitespace_is_ignored(self):
        files = {'p/G.java': """
            package p;
            import java.util.Map;
            class G { void put(Map<String, Integer> values, int[] xs) {} }
            """}
        result = collect(files, ['p.G#put(Map<String, Integer>, int[])'])
        assert result.ok
        assert result.matches == {'p.G#put(Map<String, Integer>, int[])': 'p.G#put(java.util.Map,int[])'}

    def test_nested_type_targets(self):
        result = collect({'p/Host.java': HOST}, ['p.Host.Nested#inner()'])
        assert result.root == {'p.Host.Nested#inner()'}
        assert result.used == {'p.Host#Host()', 'p.Host#delta()'}

    def test_anonymous_class_methods_are_never_targets(self):
        result = collect({'p/Host.java': HOST}, ['p.Host#run()'])
        assert result.unmatched == ['p.Host#run()']

    def test_enum_constant_bodies_do_not_duplicate_targets(self):
        files = {'p/Op.java': """
            package p;

            enum Op {
                PLUS {
                    @Override
                    String describe() { return label() + "+"; }
                },
                MINUS;

                String describe() { return label(); }
                String label() { return "op"; }
            }
            """}
        result = collect(files, ['p.Op#describe()'])
        assert result.ok
        assert result.duplicated == []
        assert result.root == {'p.Op#describe()'}
        assert result.used == {'p.Op#label()'}
        assert result.unresolved == []

    def test_same_type_in_two_files_is_ambiguous(self):
        source = 'package p; class Dup { void m() {} }'
        result = collect({'a/Dup.java': source, 'b/Dup.java': source}, ['p.Dup#m()'])
        assert result.duplicated == ['p.Dup#m()']
        with pytest.raises(AmbiguousTargetError):
            result.raise_for_unmatched()


class TestReachability:
    def test_nested_local_and_anonymous_declarations_are_collected(self):
        result = collect({'p/Host.java': HOST}, ['p.Host#target()'])
        assert result.root == {'p.Host#target()'}
        assert {
            'p.Host#alpha()', 'p.Host#beta()', 'p.Host#gamma()',
            'p.Host.Local#Local()', 'p.Host.Local#go()', 'p.Host.hits',
        } <= result.used

    def test_flag_is_restored_after_the_target(self):
        result = collect({'p/Host.java': HOST}, ['p.Host#target()'])
        assert 'p.Host#delta()' not in result.used
        assert 'p.Host#Host()' not in result.used

    def test_references_outside_targets_are_ignored(self):
        result = collect({'p/Host.java': HOST}, ['p.Host#alpha()'])
        assert result.root == {'p.Host#alpha()'}
        assert result.used == set()

    def test_unresolved_references_are_recorded(self):
        files = {'p/Log.java': """
            package p;
            class Log {
                void write() {
                    System.out.println("x");
                }
            }
            """}
        result = collect(files, ['p.Log#write()'])
        assert result.ok
        [ref] = result.unresolved
        assert ref.path == 'p/Log.java'
        assert ref.line == 5
        assert ref.text.startswith('System.out.println')

    def test_method_references_are_collected(self):
        files = {'p/Refs.java': """
            package p;

            import java.util.function.Supplier;

            class Refs {
                void target() {
                    Runnable r = this::helper;
                    Supplier<Maker> s = Maker::new;
                    Runnable out = System.out::println;
                }

                void helper() {}
                void unused() {}
            }

            class Maker {
                Maker() {}
                Maker(int size) {}
            }
            """}
        result = collect(files, ['p.Refs#target()'])
        assert result.used == {'p.Refs#helper()', 'p.Maker#Maker()'}
        [ref] = result.unresolved
        assert ref.text == 'System.out::println'

    def test_collection_is_deterministic(self):
        first = collect({'p/Host.java': HOST}, ['p.Host#target()', 'p.Host#after()'])
        second = collect({'p/Host.java': HOST}, ['p.Host#target()', 'p.Host#after()'])
        assert first.root == second.root
        assert first.used == second.used
        assert first.unresolved == second.unresolved

    def test_frozen_result_is_read_only(self):
        frozen = collect({'p/Host.java': HOST}, ['p.Host#target()']).freeze()
        assert isinstance(frozen.root, frozenset)
        assert isinstance(frozen.used, frozenset)
        assert frozen.retained == frozen.root | frozen.used

    def test_collector_accumulates_across_units(self):
        units, resolver = build({
            'p/A.java': 'package p; class A { void a() { new B().b(); } }',
            'p/B.java': 'package p; class B { void b() {} void c() { new A().a(); } }',
        })
        collector = TargetCollector(['p.A#a()', 'p.B#c()'], resolver)
        for unit in units:
            collector.visit_unit(unit)
        result = collector.result()
        assert result.root == {'p.A#a()', 'p.B#c()'}
        assert result.used == {'p.B#B()', 'p.B#b()', 'p.A#A()', 'p.A#a()'}


def test_declared_specifiers_lists_every_callable():
    units, _ = build({'p/Host.java': HOST})
    assert declared_specifiers(units[0]) == [
        'p.Host#target()', 'p.Host#alpha()', 'p.Host#beta()', 'p.Host#gamma()',
        'p.Host#after()', 'p.Host#delta()', 'p.Host.Nested#inner()',
    ]
