"""Tests for the source-tree symbol index."""
from minrepro.analyzer.symbol_index import SymbolIndex, split_type

from support import parse_unit

BASE = """
    package com.example.model;

    public abstract class Animal implements Comparable<Animal> {
        protected String name;

        public void speak() {}

        public void eat(Food food) {}

        public static class Food {}
    }
    """

DOG = """
    package com.example.model;

    import java.util.List;
    import java.util.Map;

    public class Dog extends Animal implements Runnable {
        int a, b[];

        public Dog(String name) { this.name = name; }

        @Override
        public void speak() {}

        public void run() {}

        public <T> T pick(List<T> items, Map<String, int[]> index, Food... treats) { return null; }
    }
    """

POINT = """
    package com.example.geo;

    public record Point(int x, int y) {}
    """


def index_of(*sources):
    units = [parse_unit(f"F{i}.java", source) for i, source in enumerate(sources)]
    return SymbolIndex.from_units(units), units


class TestSplitType:
    def test_generics_are_erased(self):
        assert split_type('Map<String, List<Integer>>') == ('Map', '')

    def test_array_and_varargs_suffixes(self):
        assert split_type('List<String>[]') == ('List', '[]')
        assert split_type('int[][]') == ('int', '[][]')
        assert split_type('String...') == ('String', '...')


class TestTypes:
    def test_every_named_type_is_indexed(self):
        index, _ = index_of(BASE, DOG, POINT)
        assert {'com.example.model.Animal', 'com.example.model.Animal.Food',
                'com.example.model.Dog', 'com.example.geo.Point'} <= set(index.types)

    def test_superclass_is_not_an_interface(self):
        index, _ = index_of(BASE, DOG)
        assert index.superclass('com.example.model.Dog') == 'com.example.model.Animal'
        assert index.superclass('com.example.model.Animal') is None

    def test_supertypes_include_external_interfaces(self):
        index, _ = index_of(BASE, DOG)
        supertypes = index.supertypes('com.example.model.Dog')
        assert supertypes[0] == 'com.example.model.Animal'
        assert 'java.lang.Runnable' in supertypes
        assert 'java.lang.Comparable' in supertypes

    def test_subtyping(self):
        index, _ = index_of(BASE, DOG)
        assert index.is_subtype('com.example.model.Dog', 'com.example.model.Animal')
        assert index.is_subtype('com.example.model.Dog', 'java.lang.Object')
        assert not index.is_subtype('com.example.model.Animal', 'com.example.model.Dog')
        assert not index.is_subtype('int', 'java.lang.Object')


class TestMembers:
    def test_parameters_are_qualified_and_erased(self):
        index, _ = index_of(BASE, DOG)
        [pick] = index.lookup_methods('com.example.model.Dog', 'pick')
        assert pick.signature == (
            'com.example.model.Dog#pick(java.util.List,java.util.Map,com.example.model.Animal.Food...)'
        )
        assert pick.varargs
        assert pick.type_params == ('T',)

    def test_inherited_member_types_resolve_in_subclasses(self):
        index, _ = index_of(BASE, DOG)
        [eat] = index.lookup_methods('com.example.model.Dog', 'eat')
        assert eat.signature == 'com.example.model.Animal#eat(com.example.model.Animal.Food)'

    def test_overrides_hide_the_inherited_method(self):
        index, _ = index_of(BASE, DOG)
        speaks = index.lookup_methods('com.example.model.Dog', 'speak')
        assert [m.signature for m in speaks] == ['com.example.model.Dog#speak()']

    def test_constructors_and_fields(self):
        index, _ = index_of(BASE, DOG)
        dog = index.types['com.example.model.Dog']
        assert [c.signature for c in dog.constructors] == ['com.example.model.Dog#Dog(java.lang.String)']
        assert dog.fields['b'].type == 'int[]'
        assert index.lookup_field('com.example.model.Dog', 'name').signature == 'com.example.model.Animal.name'

    def test_multi_variable_field_declaration_has_one_signature_per_variable(self):
        index, units = index_of(BASE, DOG)
        dog = units[1].types[0]
        field_member = next(m for m in dog.members if m.name == 'a,b')
        assert index.declaration_signatures('F1.java', field_member.node) == [
            'com.example.model.Dog.a', 'com.example.model.Dog.b',
        ]

    def test_default_constructor(self):
        index, _ = index_of(BASE)
        food = index.types['com.example.model.Animal.Food']
        assert food.constructors == []
        assert food.default_constructor.signature == 'com.example.model.Animal.Food#Food()'

    def test_record_components(self):
        index, _ = index_of(POINT)
        point = index.types['com.example.geo.Point']
        assert [c.signature for c in point.constructors] == ['com.example.geo.Point#Point(int,int)']
        assert point.fields['x'].type == 'int'
        assert [m.signature for m in index.lookup_methods('com.example.geo.Point', 'y')] == [
            'com.example.geo.Point#y()',
        ]

    def test_duplicate_declarations_keep_member_signatures(self):
        index, units = index_of(DOG, DOG)
        copy = units[1].types[0]
        ctor = next(m for m in copy.members if m.name == 'Dog')
        assert index.declaration_signatures('F1.java', ctor.node) == ['com.example.model.Dog#Dog(java.lang.String)']
