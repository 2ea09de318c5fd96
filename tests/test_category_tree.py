"""
Category tree construction tests.
"""
import pytest

from core.category_tree import build_category_tree, flatten_tree
from core.errors import ValidationFailed


def cat(cat_id, parent_id=None):
    return {'id': cat_id, 'name': cat_id.title(), 'parent_id': parent_id}


def ids(nodes):
    return [node['id'] for node in nodes]


def test_nests_children_under_parents():
    tree = build_category_tree([
        cat('electronics'),
        cat('chargers', 'electronics'),
        cat('cables', 'electronics'),
        cat('usb-c', 'cables'),
        cat('toys'),
    ])

    assert ids(tree) == ['electronics', 'toys']
    assert ids(tree[0]['children']) == ['chargers', 'cables']
    assert ids(tree[0]['children'][1]['children']) == ['usb-c']


def test_missing_parent_becomes_root():
    tree = build_category_tree([cat('orphan', 'deleted-parent')])

    assert ids(tree) == ['orphan']


def test_self_parent_terminates():
    tree = build_category_tree([cat('loop', 'loop')])

    assert ids(tree) == ['loop']
    assert tree[0]['children'] == []


def test_mutual_cycle_emits_each_node_once():
    tree = build_category_tree([
        cat('a', 'b'),
        cat('b', 'a'),
        cat('root'),
    ])

    flat = [node['id'] for _, node in flatten_tree(tree)]
    assert sorted(flat) == ['a', 'b', 'root']
    assert ids(tree) == ['root', 'a']
    assert ids(tree[1]['children']) == ['b']


def test_max_depth():
    chain = [cat('c0')] + [cat(f'c{i}', f'c{i - 1}') for i in range(1, 5)]

    assert len(list(flatten_tree(build_category_tree(chain, max_depth=5)))) == 5
    with pytest.raises(ValidationFailed):
        build_category_tree(chain, max_depth=4)


def test_flatten_reports_depth():
    tree = build_category_tree([cat('a'), cat('b', 'a'), cat('c', 'b')])

    assert [(depth, node['id']) for depth, node in flatten_tree(tree)] == [(0, 'a'), (1, 'b'), (2, 'c')]


def test_input_is_not_mutated():
    rows = [cat('a'), cat('b', 'a')]

    build_category_tree(rows)

    assert 'children' not in rows[0]


def test_service_tree_uses_visible_categories(service, alice, bob, category):
    service.create_resource(alice.id, "category", {'name': "Chargers", 'parent_id': category['id']})

    tree = service.category_tree(bob.id)

    assert [node['name'] for node in tree] == ["Electronics"]
    assert [child['name'] for child in tree[0]['children']] == ["Chargers"]
    assert tree[0]['description'] is None
