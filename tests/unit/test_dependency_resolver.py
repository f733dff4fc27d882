import pytest
from t2k.RUNNERS.dependency_resolver import DependencyResolver
from t2k.exceptions import CyclicDependencyError


def test_dependencies_first():
    order = DependencyResolver().resolve_order({
        'webserver': ['postgres', 'redis'],
        'postgres': [],
        'redis': [],
    })
    assert order == ['postgres', 'redis', 'webserver']


def test_ties_keep_declaration_order():
    order = DependencyResolver().resolve_order({'c': [], 'a': [], 'b': []})
    assert order == ['c', 'a', 'b']


def test_dependencies_visited_in_declaration_order():
    order = DependencyResolver().resolve_order({'x': [], 'y': [], 'z': ['y', 'x']})
    assert order == ['x', 'y', 'z']


def test_undeclared_dependency_ignored():
    assert DependencyResolver().resolve_order({'a': ['ghost']}) == ['a']


def test_cycle():
    with pytest.raises(CyclicDependencyError) as exc:
        DependencyResolver().resolve_order({'a': ['b'], 'b': ['c'], 'c': ['a']})
    assert exc.value.name == 'a'
    assert exc.value.cycle == ['a', 'b', 'c', 'a']


def test_self_cycle():
    with pytest.raises(CyclicDependencyError):
        DependencyResolver().resolve_order({'a': ['a']})
