"""Member identity resolution for references inside method bodies.

``UnitResolver.resolve(node)`` binds a call, object construction, explicit
constructor invocation or method reference to the canonical signature of
the declaration it invokes, following Java's lookup rules closely enough
for slicing:

* unqualified calls search the innermost enclosing type (including its
  supertypes) that declares a method of that name, then static imports;
* qualified calls use the static type of the receiver, inferred from
  locals, parameters, fields, literals and the return types of other calls;
* overloads are chosen by arity, then argument compatibility, then the
  most specific candidate;
* method references (`this::m`, `Type::m`, `Type::new`) bind to the only
  candidate of that name, or to the only one whose arity fits the
  functional interface they are assigned to.

Anything that cannot be bound to a declaration under the source root
raises ResolutionError; callers decide how to surface it.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from tree_sitter import Node

from ..errors import ResolutionError
from .extractor import TYPE_KINDS, SourceUnit, TypeKind
from .parser import ancestors, named_children, node_text, same_node
from .symbol_index import (
    BOXES, OBJECT, PRIMITIVES, STRING, UNBOXES, FieldInfo, MethodInfo, SymbolIndex, TypeInfo,
    enclosing_type_node, split_type, type_parameter_names,
)

INTEGER_LITERALS = frozenset({
    'decimal_integer_literal', 'hex_integer_literal', 'octal_integer_literal', 'binary_integer_literal',
})
FLOAT_LITERALS = frozenset({'decimal_floating_point_literal', 'hex_floating_point_literal'})
LITERAL_TYPES = {
    'string_literal': STRING,
    'text_block': STRING,
    'character_literal': 'char',
    'true': 'boolean',
    'false': 'boolean',
    'null_literal': 'null',
    'class_literal': 'java.lang.Class',
    'instanceof_expression': 'boolean',
}
BOOLEAN_OPERATORS = frozenset({'==', '!=', '<', '>', '<=', '>=', '&&', '||'})
SHIFT_OPERATORS = frozenset({'<<', '>>', '>>>'})
NUMERIC_ORDER = ('int', 'long', 'float', 'double')

WIDENING = {
    'byte': {'short', 'int', 'long', 'float', 'double'},
    'short': {'int', 'long', 'float', 'double'},
    'char': {'int', 'long', 'float', 'double'},
    'int': {'long', 'float', 'double'},
    'long': {'float', 'double'},
    'float': {'double'},
}

# Reference types a boxed primitive may be passed as.
BOX_SUPERTYPES = frozenset({OBJECT, 'java.lang.Number', 'java.io.Serializable', 'java.lang.Comparable'})

# Identifier positions that declare or label something rather than read a variable.
NON_EXPRESSION_FIELDS = ('name', 'field', 'type', 'parameters')
NON_EXPRESSION_PARENTS = frozenset({
    'scoped_identifier', 'scoped_type_identifier', 'labeled_statement', 'break_statement',
    'continue_statement', 'inferred_parameters', 'import_declaration', 'package_declaration',
})

CALL_NODE_TYPES = frozenset({
    'method_invocation', 'object_creation_expression', 'explicit_constructor_invocation', 'method_reference',
})

# Parameter counts of the functional interfaces a method reference is most often assigned to.
FUNCTIONAL_ARITY = {
    'java.lang.Runnable': 0,
    'java.util.concurrent.Callable': 0,
    'java.util.function.Supplier': 0,
    'java.util.function.Consumer': 1,
    'java.util.function.Function': 1,
    'java.util.function.Predicate': 1,
    'java.util.function.UnaryOperator': 1,
    'java.util.function.IntFunction': 1,
    'java.util.function.ToIntFunction': 1,
    'java.util.function.ToLongFunction': 1,
    'java.util.function.ToDoubleFunction': 1,
    'java.util.function.BiConsumer': 2,
    'java.util.function.BiFunction': 2,
    'java.util.function.BiPredicate': 2,
    'java.util.function.BinaryOperator': 2,
    'java.util.Comparator': 2,
}

# Receivers of a method reference that are written as types rather than expressions.
TYPE_RECEIVERS = frozenset({'type_identifier', 'scoped_type_identifier', 'generic_type', 'array_type'})


@dataclass
class Binding:
    """What a simple name refers to: its static type and, for fields, the field."""
    type: Optional[str]
    field: Optional[FieldInfo] = None


def is_anonymous_body(node: Node) -> bool:
    """Class body of an anonymous class or of an enum constant."""
    return (node.type == 'class_body' and node.parent is not None
            and node.parent.type in ('object_creation_expression', 'enum_constant'))


def describe(node: Node) -> str:
    text = node_text(node).split('\n', 1)[0].strip()
    return text if len(text) <= 80 else text[:77] + '...'


def unbox(type_name: Optional[str]) -> Optional[str]:
    return UNBOXES.get(type_name, type_name)


def promote(type_name: Optional[str]) -> Optional[str]:
    primitive = unbox(type_name)
    if primitive in ('byte', 'short', 'char', 'int'):
        return 'int'
    if primitive in ('long', 'float', 'double'):
        return primitive
    return None


class MemberResolver:
    """Resolver over a whole source tree; hands out per-unit resolvers."""

    def __init__(self, index: SymbolIndex):
        self.index = index

    def for_unit(self, unit: SourceUnit) -> 'UnitResolver':
        return UnitResolver(self.index, unit)


class UnitResolver:
    """Resolves nodes of one translation unit. Results are memoised per node."""

    def __init__(self, index: SymbolIndex, unit: SourceUnit):
        self.index = index
        self.unit = unit
        self.path = str(unit.relative_path)
        self._callables: Dict[Tuple[int, int, str], object] = {}
        self._types: Dict[Tuple[int, int, str], Optional[str]] = {}
        self._call_handlers: Dict[str, Callable[[Node], MethodInfo]] = {
            'method_invocation': self._resolve_invocation,
            'object_creation_expression': self._resolve_creation,
            'explicit_constructor_invocation': self._resolve_explicit_constructor,
            'method_reference': self._resolve_method_reference,
        }
        self._type_handlers: Dict[str, Callable[[Node], Optional[str]]] = {
            'identifier': self._identifier_type,
            'this': self._this_type,
            'field_access': self._field_access_type,
            'method_invocation': self._invocation_type,
            'object_creation_expression': lambda n: self._qualify(node_text(n.child_by_field_name('type')), n),
            'cast_expression': lambda n: self._qualify(node_text(n.child_by_field_name('type')), n),
            'parenthesized_expression': lambda n: self.type_of(next(iter(named_children(n)), None)),
            'ternary_expression': lambda n: (self.type_of(n.child_by_field_name('consequence'))
                                             or self.type_of(n.child_by_field_name('alternative'))),
            'assignment_expression': lambda n: self.type_of(n.child_by_field_name('left')),
            'update_expression': lambda n: self.type_of(next(iter(named_children(n)), None)),
            'array_access': self._array_access_type,
            'array_creation_expression': self._array_creation_type,
            'binary_expression': self._binary_type,
            'unary_expression': self._unary_type,
        }

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def resolve(self, node: Node) -> str:
        """Canonical signature of the callable a call or construction binds to.

        Raises:
            ResolutionError: If the target is not declared under the source root
        """
        return self.resolve_callable(node).signature

    def resolve_callable(self, node: Node) -> MethodInfo:
        key = (node.start_byte, node.end_byte, node.type)
        if key not in self._callables:
            handler = self._call_handlers.get(node.type)
            if handler is None:
                raise ResolutionError(describe(node), f"{node.type} is not a call or construction")
            try:
                self._callables[key] = handler(node)
            except ResolutionError as error:
                self._callables[key] = error
        result = self._callables[key]
        if isinstance(result, ResolutionError):
            raise result
        return result

    def resolve_declaration(self, node: Node) -> List[str]:
        """Signatures of a method, constructor or field declaration.

        A field declaration with several variables yields one signature each.
        """
        signatures = self.index.declaration_signatures(self.path, node)
        if not signatures:
            raise ResolutionError(describe(node), "declaration is not a member of an indexed type")
        return signatures

    def resolve_field_reference(self, node: Node) -> Optional[str]:
        """Signature of the field a field access or bare name reads, if any.

        Returns None for locals, parameters, type names and fields of types
        outside the source tree.
        """
        field = None
        if node.type == 'field_access':
            field = self._field_access_target(node)
        elif node.type == 'identifier' and self._is_expression_identifier(node):
            binding = self._lookup_variable(node_text(node), node)
            field = binding.field if binding else None
        return field.signature if field else None

    def type_of(self, node: Optional[Node]) -> Optional[str]:
        """Static type of an expression, qualified, or None when unknown."""
        if node is None:
            return None
        key = (node.start_byte, node.end_byte, node.type)
        if key not in self._types:
            self._types[key] = None  # guards against self-referential initializers
            self._types[key] = self._compute_type(node)
        return self._types[key]

    # ------------------------------------------------------------------
    # Scopes
    # ------------------------------------------------------------------

    def _context_type(self, node: Node) -> Optional[TypeInfo]:
        outer = enclosing_type_node(node)
        return self.index.type_of_node(self.path, outer) if outer is not None else None

    @staticmethod
    def _type_params_at(node: Node) -> Tuple[str, ...]:
        names = []
        for scope in [node, *ancestors(node)]:
            if scope.type in TYPE_KINDS:
                break
            if scope.type in ('method_declaration', 'constructor_declaration'):
                names.extend(type_parameter_names(scope))
        return tuple(names)

    def _qualify(self, text: str, node: Node) -> str:
        return self.index.qualify(text, self._context_type(node), self._type_params_at(node))

    def _lookup_chain(self, node: Node) -> List[str]:
        """Types whose members are in scope at ``node``, innermost first."""
        chain = []
        for scope in ancestors(node):
            # An enum constant body adds nothing: the enum itself is next in line.
            if is_anonymous_body(scope) and scope.parent.type == 'object_creation_expression':
                creation = scope.parent
                chain.append(self._qualify(node_text(creation.child_by_field_name('type')), creation))
            elif scope.type in TYPE_KINDS:
                info = self.index.type_of_node(self.path, scope)
                if info is not None:
                    chain.append(info.qualified_name)
        return chain

    def _this_type(self, node: Node) -> Optional[str]:
        chain = self._lookup_chain(node)
        return chain[0] if chain else None

    def _super_type(self, node: Node) -> Optional[str]:
        context = self._context_type(node)
        return self.index.superclass(context.qualified_name) if context else None

    def _lookup_variable(self, name: str, node: Node) -> Optional[Binding]:
        for scope in ancestors(node):
            binding = self._local_binding(name, scope, node)
            if binding is not None:
                return binding
        binding = self._pattern_binding(name, node)
        if binding is not None:
            return binding
        for owner in self._lookup_chain(node):
            field = self.index.lookup_field(owner, name)
            if field is not None:
                return Binding(field.type, field)
        return None

    def _local_binding(self, name: str, scope: Node, node: Node) -> Optional[Binding]:
        scope_type = scope.type
        if scope_type in ('method_declaration', 'constructor_declaration', 'lambda_expression'):
            return self._parameter_binding(name, scope.child_by_field_name('parameters'), scope)

        if scope_type == 'catch_clause':
            for param in named_children(scope):
                if param.type == 'catch_formal_parameter' and node_text(param.child_by_field_name('name')) == name:
                    catch_types = [c for c in named_children(param) if c.type == 'catch_type']
                    alternatives = named_children(catch_types[0]) if catch_types else []
                    if len(alternatives) == 1:
                        return Binding(self._qualify(node_text(alternatives[0]), scope))
                    return Binding(None)

        if scope_type == 'enhanced_for_statement' and node_text(scope.child_by_field_name('name')) == name:
            written = node_text(scope.child_by_field_name('type'))
            if written == 'var':
                iterated = self.type_of(scope.child_by_field_name('value'))
                return Binding(iterated[:-2] if iterated and iterated.endswith('[]') else None)
            return Binding(self._qualify(written, scope))

        if scope_type == 'resource_specification':
            for resource in named_children(scope):
                if (resource.type == 'resource' and resource.start_byte < node.start_byte
                        and node_text(resource.child_by_field_name('name')) == name):
                    written = node_text(resource.child_by_field_name('type'))
                    if written == 'var':
                        return Binding(self.type_of(resource.child_by_field_name('value')))
                    return Binding(self._qualify(written, scope))

        found = None
        for child in named_children(scope):
            if child.type != 'local_variable_declaration' or child.start_byte >= node.start_byte:
                continue
            for declarator in child.children_by_field_name('declarator'):
                if node_text(declarator.child_by_field_name('name')) == name:
                    found = Binding(self._local_type(child, declarator))
        return found

    def _parameter_binding(self, name: str, params: Optional[Node], scope: Node) -> Optional[Binding]:
        if params is None:
            return None
        if params.type == 'identifier':
            return Binding(None) if node_text(params) == name else None
        for param in named_children(params):
            if param.type == 'identifier' and node_text(param) == name:
                return Binding(None)
            if param.type == 'formal_parameter' and node_text(param.child_by_field_name('name')) == name:
                written = node_text(param.child_by_field_name('type'))
                if written == 'var':
                    return Binding(None)
                written += node_text(param.child_by_field_name('dimensions'))
                return Binding(self._qualify(written, scope))
            if param.type == 'spread_parameter':
                for declarator in named_children(param):
                    if (declarator.type == 'variable_declarator'
                            and node_text(declarator.child_by_field_name('name')) == name):
                        type_node = next(c for c in named_children(param)
                                         if c.type not in ('modifiers', 'variable_declarator'))
                        return Binding(self._qualify(node_text(type_node), scope) + '[]')
        return None

    def _pattern_binding(self, name: str, node: Node) -> Optional[Binding]:
        """Binding introduced by ``x instanceof Foo f`` earlier in the same callable."""
        body = None
        for scope in ancestors(node):
            if scope.type in ('method_declaration', 'constructor_declaration', 'lambda_expression'):
                body = scope
                break
        if body is None:
            return None
        stack = [body]
        while stack:
            current = stack.pop()
            if current.start_byte >= node.start_byte:
                continue
            if current.type == 'instanceof_expression' and node_text(current.child_by_field_name('name')) == name:
                return Binding(self._qualify(node_text(current.child_by_field_name('right')), current))
            stack.extend(current.named_children)
        return None

    def _local_type(self, declaration: Node, declarator: Node) -> Optional[str]:
        written = node_text(declaration.child_by_field_name('type'))
        if written == 'var':
            return self.type_of(declarator.child_by_field_name('value'))
        written += node_text(declarator.child_by_field_name('dimensions'))
        return self._qualify(written, declaration)

    @staticmethod
    def _is_expression_identifier(node: Node) -> bool:
        parent = node.parent
        if parent is None or parent.type in NON_EXPRESSION_PARENTS:
            return False
        if parent.type == 'method_reference':
            return same_node(parent.named_children[0], node)
        return not any(same_node(parent.child_by_field_name(f), node) for f in NON_EXPRESSION_FIELDS)

    # ------------------------------------------------------------------
    # Calls and constructions
    # ------------------------------------------------------------------

    @staticmethod
    def _arguments(node: Node) -> List[Node]:
        arguments = node.child_by_field_name('arguments')
        return named_children(arguments) if arguments is not None else []

    def _resolve_invocation(self, node: Node) -> MethodInfo:
        name = node_text(node.child_by_field_name('name'))
        receiver_node = node.child_by_field_name('object')
        args = self._arguments(node)

        if receiver_node is None:
            for owner in self._lookup_chain(node):
                candidates = self.index.lookup_methods(owner, name)
                if candidates:
                    return self._select(candidates, args, node)
            candidates = self._static_import_candidates(name)
            if candidates:
                return self._select(candidates, args, node)
            raise ResolutionError(describe(node), f"no method named '{name}' is visible here")

        if receiver_node.type == 'super':
            receiver = self._super_type(node)
        else:
            receiver = self._receiver_type(receiver_node)
        if receiver is None:
            raise ResolutionError(describe(node), f"cannot determine the type of '{describe(receiver_node)}'")
        if receiver.endswith(']'):
            raise ResolutionError(describe(node), f"'{name}' is invoked on an array")
        if receiver not in self.index.types:
            raise ResolutionError(describe(node), f"{receiver} is not declared in the source tree")
        candidates = self.index.lookup_methods(receiver, name)
        if not candidates:
            raise ResolutionError(describe(node), f"{receiver} has no method named '{name}' in the source tree")
        return self._select(candidates, args, node)

    def _static_import_candidates(self, name: str) -> List[MethodInfo]:
        found = []
        for imported in self.unit.imports:
            if not imported.is_static:
                continue
            if imported.on_demand:
                owner = imported.name
            elif imported.name.rsplit('.', 1)[-1] == name:
                owner = imported.name.rsplit('.', 1)[0]
            else:
                continue
            if owner in self.index.types:
                found.extend(self.index.lookup_methods(owner, name))
        return found

    def _receiver_type(self, node: Node) -> Optional[str]:
        if node.type == 'identifier':
            name = node_text(node)
            binding = self._lookup_variable(name, node)
            if binding is not None:
                return binding.type
            qualified = self._qualify(name, node)
            return qualified if qualified in self.index.types or qualified != name else None
        inferred = self.type_of(node)
        if inferred is None and node.type in ('field_access', 'scoped_identifier'):
            qualified = self._qualify(node_text(node), node)
            return qualified if qualified in self.index.types else None
        return inferred

    def _resolve_creation(self, node: Node) -> MethodInfo:
        owner = self._qualify(node_text(node.child_by_field_name('type')), node)
        info = self.index.types.get(owner)
        if info is None:
            raise ResolutionError(describe(node), f"{owner} is not declared in the source tree")
        return self._select_constructor(info, self._arguments(node), node)

    def _resolve_explicit_constructor(self, node: Node) -> MethodInfo:
        context = self._context_type(node)
        if context is None:
            raise ResolutionError(describe(node), "constructor invocation outside of a type")
        keyword = node.child_by_field_name('constructor')
        if keyword is not None and keyword.type == 'super':
            owner = self.index.superclass(context.qualified_name)
            if owner is None or owner not in self.index.types:
                raise ResolutionError(
                    describe(node), f"superclass of {context.qualified_name} is not declared in the source tree",
                )
        else:
            owner = context.qualified_name
        return self._select_constructor(self.index.types[owner], self._arguments(node), node)

    def _resolve_method_reference(self, node: Node) -> MethodInfo:
        receiver_node = node.named_children[0]
        is_new = node.children[-1].type == 'new'
        if receiver_node.type == 'super':
            receiver = self._super_type(node)
        elif receiver_node.type in TYPE_RECEIVERS:
            receiver = self._qualify(node_text(receiver_node), node)
        else:
            receiver = self._receiver_type(receiver_node)
        if receiver is None:
            raise ResolutionError(describe(node), f"cannot determine the type of '{describe(receiver_node)}'")
        if receiver.endswith(']'):
            raise ResolutionError(describe(node), "method reference on an array type")
        info = self.index.types.get(receiver)
        if info is None:
            raise ResolutionError(describe(node), f"{receiver} is not declared in the source tree")

        if is_new:
            candidates = info.constructors or [info.default_constructor]
        else:
            name = node_text(node.children[-1])
            candidates = self.index.lookup_methods(receiver, name)
            if not candidates:
                raise ResolutionError(describe(node), f"{receiver} has no method named '{name}' in the source tree")
        if len(candidates) == 1:
            return candidates[0]

        arity = self._functional_arity(node)
        if arity is not None:
            counts = {arity}
            # Type::instanceMethod takes the receiver as its first argument.
            names_type = receiver_node.type in TYPE_RECEIVERS or (
                receiver_node.type == 'identifier'
                and self._lookup_variable(node_text(receiver_node), receiver_node) is None
            )
            if names_type and not is_new:
                counts.add(arity - 1)
            fits = [candidate for candidate in candidates if len(candidate.params) in counts]
            if len(fits) == 1:
                return fits[0]
        raise ResolutionError(
            describe(node), "ambiguous method reference, candidates: " + ', '.join(c.signature for c in candidates),
        )

    def _functional_arity(self, node: Node) -> Optional[int]:
        """Parameter count of the interface a method reference is assigned to, when known."""
        parent = node.parent
        target = None
        if parent.type == 'variable_declarator':
            declaration = parent.parent
            target = self._qualify(node_text(declaration.child_by_field_name('type')), declaration)
        elif parent.type == 'assignment_expression':
            target = self.type_of(parent.child_by_field_name('left'))
        elif parent.type == 'cast_expression':
            target = self._qualify(node_text(parent.child_by_field_name('type')), parent)
        return FUNCTIONAL_ARITY.get(target)

    def _select_constructor(self, info: TypeInfo, args: List[Node], node: Node) -> MethodInfo:
        if info.constructors:
            return self._select(info.constructors, args, node)
        if args and info.kind is not TypeKind.INTERFACE:
            raise ResolutionError(
                describe(node), f"{info.qualified_name} declares no constructor taking {len(args)} argument(s)",
            )
        return info.default_constructor

    # ------------------------------------------------------------------
    # Overload selection
    # ------------------------------------------------------------------

    def _select(self, candidates: List[MethodInfo], args: List[Node], node: Node) -> MethodInfo:
        arg_types = [self.type_of(arg) for arg in args]
        for phase in (self._fixed_arity_score, self._variable_arity_score):
            scored = []
            for candidate in candidates:
                score = phase(candidate, arg_types)
                if score is not None:
                    scored.append((score, candidate))
            if scored:
                return self._most_specific(scored, node)
        shown = ', '.join(t or '?' for t in arg_types)
        raise ResolutionError(
            describe(node), f"no overload of '{candidates[0].name}' accepts ({shown})",
        )

    def _type_variables(self, method: MethodInfo) -> frozenset:
        owner = self.index.types.get(method.owner)
        return frozenset(method.type_params) | frozenset(owner.type_params if owner else ())

    def _fixed_arity_score(self, method: MethodInfo, arg_types: List[Optional[str]]) -> Optional[int]:
        if len(method.params) != len(arg_types):
            return None
        type_vars = self._type_variables(method)
        total = 0
        for arg, param in zip(arg_types, method.params):
            if param.endswith('...'):
                param = param[:-3] + '[]'
            score = self._compatibility(arg, param, type_vars)
            if score is None:
                return None
            total += score
        return total

    def _variable_arity_score(self, method: MethodInfo, arg_types: List[Optional[str]]) -> Optional[int]:
        if not method.varargs or len(arg_types) < len(method.params) - 1:
            return None
        type_vars = self._type_variables(method)
        fixed, element = method.params[:-1], method.params[-1][:-3]
        total = 0
        for index, arg in enumerate(arg_types):
            param = fixed[index] if index < len(fixed) else element
            score = self._compatibility(arg, param, type_vars)
            if score is None:
                return None
            total += score
        return total

    def _compatibility(self, arg: Optional[str], param: str, type_vars: frozenset) -> Optional[int]:
        """3 exact, 2 by subtyping/widening, 1 plausible, None incompatible."""
        if arg is None:
            return 1
        if arg == param:
            return 3
        if split_type(param)[0] in type_vars:
            return 1
        if arg == 'null':
            return None if param in PRIMITIVES else 1
        if arg in PRIMITIVES and param in PRIMITIVES:
            return 2 if param in WIDENING.get(arg, ()) else None
        if arg in PRIMITIVES:
            return 1 if param == BOXES.get(arg) or param in BOX_SUPERTYPES else None
        if param in PRIMITIVES:
            primitive = UNBOXES.get(arg)
            return 1 if primitive and (primitive == param or param in WIDENING.get(primitive, ())) else None
        if param == OBJECT or self.index.is_subtype(arg, param):
            return 2
        if arg.endswith('[]') or param.endswith('[]'):
            if arg.endswith('[]') and param.endswith('[]'):
                return self._compatibility(arg[:-2], param[:-2], type_vars)
            return None
        if arg in self.index.types and param in self.index.types:
            return None
        return 1

    def _assignable(self, sub: str, sup: str) -> bool:
        sub = sub[:-3] + '[]' if sub.endswith('...') else sub
        sup = sup[:-3] + '[]' if sup.endswith('...') else sup
        return sub == sup or sup in WIDENING.get(sub, ()) or self.index.is_subtype(sub, sup)

    def _most_specific(self, scored: List[Tuple[int, MethodInfo]], node: Node) -> MethodInfo:
        best = max(score for score, _ in scored)
        top = [candidate for score, candidate in scored if score == best]
        for candidate in top:
            if all(other is candidate or (
                    len(other.params) == len(candidate.params)
                    and all(self._assignable(a, b) for a, b in zip(candidate.params, other.params)))
                   for other in top):
                return candidate
        raise ResolutionError(
            describe(node), "ambiguous call, candidates: " + ', '.join(c.signature for c in top),
        )

    # ------------------------------------------------------------------
    # Expression types
    # ------------------------------------------------------------------

    def _compute_type(self, node: Node) -> Optional[str]:
        node_type = node.type
        if node_type in LITERAL_TYPES:
            return LITERAL_TYPES[node_type]
        if node_type in INTEGER_LITERALS:
            return 'long' if node_text(node).lower().endswith('l') else 'int'
        if node_type in FLOAT_LITERALS:
            return 'float' if node_text(node).lower().endswith('f') else 'double'
        handler = self._type_handlers.get(node_type)
        return handler(node) if handler is not None else None

    def _identifier_type(self, node: Node) -> Optional[str]:
        binding = self._lookup_variable(node_text(node), node)
        return binding.type if binding else None

    def _field_access_target(self, node: Node) -> Optional[FieldInfo]:
        receiver_node = node.child_by_field_name('object')
        if receiver_node is None:
            return None
        if receiver_node.type == 'super':
            owner = self._super_type(node)
        else:
            owner = self._receiver_type(receiver_node)
        if owner is None or owner not in self.index.types:
            return None
        return self.index.lookup_field(owner, node_text(node.child_by_field_name('field')))

    def _field_access_type(self, node: Node) -> Optional[str]:
        if node.child_by_field_name('field').type == 'this':
            # Outer.this
            qualified = self._qualify(node_text(node.child_by_field_name('object')), node)
            return qualified if qualified in self.index.types else None
        field = self._field_access_target(node)
        if field is not None:
            return field.type
        if node_text(node.child_by_field_name('field')) == 'length':
            receiver = self.type_of(node.child_by_field_name('object'))
            if receiver and receiver.endswith('[]'):
                return 'int'
        return None

    def _invocation_type(self, node: Node) -> Optional[str]:
        try:
            method = self.resolve_callable(node)
        except ResolutionError:
            return None
        if method.return_type is None or split_type(method.return_type)[0] in self._type_variables(method):
            return None
        return method.return_type

    def _array_access_type(self, node: Node) -> Optional[str]:
        array = self.type_of(node.child_by_field_name('array'))
        return array[:-2] if array and array.endswith('[]') else None

    def _array_creation_type(self, node: Node) -> Optional[str]:
        base = self._qualify(node_text(node.child_by_field_name('type')), node)
        depth = sum(1 for child in named_children(node) if child.type == 'dimensions_expr')
        depth += node_text(node.child_by_field_name('dimensions')).count('[')
        return base + '[]' * depth

    def _binary_type(self, node: Node) -> Optional[str]:
        operator = node.child_by_field_name('operator')
        op = operator.type if operator is not None else ''
        if op in BOOLEAN_OPERATORS:
            return 'boolean'
        left = self.type_of(node.child_by_field_name('left'))
        right = self.type_of(node.child_by_field_name('right'))
        if op == '+' and STRING in (left, right):
            return STRING
        if op in ('&', '|', '^') and 'boolean' in (unbox(left), unbox(right)):
            return 'boolean'
        if op in SHIFT_OPERATORS:
            return promote(left)
        left, right = promote(left), promote(right)
        if left is None or right is None:
            return None
        return max(left, right, key=NUMERIC_ORDER.index)

    def _unary_type(self, node: Node) -> Optional[str]:
        operator = node.child_by_field_name('operator')
        if operator is not None and operator.type == '!':
            return 'boolean'
        return promote(self.type_of(node.child_by_field_name('operand')))
