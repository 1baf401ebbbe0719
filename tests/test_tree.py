"""
Tests for the lazy game tree: materialization, toggling, selection, paths.
"""

import pytest

from board import EMPTY_BOARD, InvalidBoardError, Move, analyze_board, empty_cells, place
from tree import (
    COLLAPSED,
    EXPANDED,
    TERMINAL,
    UNINITIALIZED,
    GameTree,
    UnknownNodeError,
)


@pytest.fixture
def tree():
    return GameTree()


def _child_at(tree, node, index):
    return next(c for c in tree.children_of(node) if c.move.index == index)


def _materialize_all(tree, node):
    stack = [node]
    seen = []
    while stack:
        n = stack.pop()
        seen.append(n)
        stack.extend(tree.materialize_children(n))
    return seen


def test_root_starts_expanded_and_selected(tree):
    root = tree.get_root()
    assert root.board == EMPTY_BOARD
    assert root.move is None
    assert root.depth == 0
    assert root.parent_id is None
    assert root.expanded is True
    assert tree.selected is root
    assert len(root.children) == 9


def test_root_can_start_collapsed():
    tree = GameTree(expand_root=False)
    root = tree.get_root()
    assert root.children is None
    assert tree.state(root) == UNINITIALIZED
    assert len(tree.nodes) == 1


def test_create_node_does_not_compute_children(tree):
    node = tree.create_node("X........", Move("X", 0), 1)
    assert node.children is None
    assert node.analysis == analyze_board("X........")
    assert node.label == "O to move"


def test_ids_are_unique_and_increasing(tree):
    root = tree.get_root()
    ids = [root.id] + root.children
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)
    newer = tree.materialize_children(tree.children_of(root)[0])
    assert min(c.id for c in newer) > max(ids)


def test_children_in_ascending_cell_order(tree):
    root = tree.get_root()
    children = tree.children_of(root)
    assert [c.move.index for c in children] == list(range(9))
    assert all(c.move.player == "X" for c in children)
    assert all(c.depth == 1 for c in children)
    assert all(c.parent_id == root.id for c in children)


def test_children_differ_in_exactly_one_cell(tree):
    node = _child_at(tree, tree.get_root(), 4)
    children = tree.materialize_children(node)
    empties = empty_cells(node.board)
    assert len(children) == node.analysis.open_moves == 8
    for k, child in enumerate(children):
        diff = [i for i in range(9) if child.board[i] != node.board[i]]
        assert diff == [empties[k]]
        assert child.move == Move("O", empties[k])
        assert child.board == place(node.board, empties[k], "O")


def test_materialize_is_idempotent(tree):
    node = _child_at(tree, tree.get_root(), 0)
    first = tree.materialize_children(node)
    count = len(tree.nodes)
    second = tree.materialize_children(node)
    assert [c.id for c in first] == [c.id for c in second]
    assert len(tree.nodes) == count


def test_terminal_node_never_gets_children():
    tree = GameTree("XXXOO....")
    root = tree.get_root()
    assert root.analysis.is_terminal
    assert root.children == []
    assert tree.materialize_children(root) == []
    assert tree.toggle_expansion(root) is False
    assert root.expanded is False
    assert tree.state(root) == TERMINAL
    assert tree.is_expandable(root) is False
    assert len(tree.nodes) == 1


def test_toggle_cycles_keep_children_and_ids(tree):
    node = _child_at(tree, tree.get_root(), 0)
    assert tree.state(node) == UNINITIALIZED

    assert tree.toggle_expansion(node) is True
    ids = list(node.children)
    assert tree.state(node) == EXPANDED

    assert tree.toggle_expansion(node) is False
    assert tree.state(node) == COLLAPSED
    assert node.children == ids
    assert tree.visible_children(node) == []

    tree.toggle_expansion(node)
    assert node.children == ids
    assert [c.id for c in tree.visible_children(node)] == ids


def test_collapse_hides_subtree_from_traversal(tree):
    root = tree.get_root()
    child = _child_at(tree, root, 0)
    tree.toggle_expansion(child)
    visible = [n.id for n in tree.visible_nodes()]
    assert len(visible) == 1 + 9 + 8

    tree.toggle_expansion(root)
    assert [n.id for n in tree.visible_nodes()] == [root.id]
    assert tree.visible_links() == []

    tree.toggle_expansion(root)
    assert [n.id for n in tree.visible_nodes()] == visible


def test_visible_nodes_preorder(tree):
    root = tree.get_root()
    first = _child_at(tree, root, 0)
    tree.toggle_expansion(first)
    order = [n.id for n in tree.visible_nodes()]
    assert order[0] == root.id
    assert order[1] == first.id
    assert order[2:10] == first.children
    assert order[10:] == root.children[1:]
    links = tree.visible_links()
    assert (root.id, first.id) in links
    assert all((first.id, cid) in links for cid in first.children)
    assert len(links) == len(order) - 1


def test_turn_alternation_by_depth():
    tree = GameTree("XO.......")
    for node in _materialize_all(tree, tree.get_root()):
        if node.analysis.is_terminal:
            continue
        expected = "X" if node.depth % 2 == 0 else "O"
        assert node.analysis.next_player == expected


def test_subtree_is_finite_and_consistent():
    tree = GameTree("XO..X....", expand_root=False)
    nodes = _materialize_all(tree, tree.get_root())
    assert len(nodes) == len(tree.nodes)
    for node in nodes:
        assert 3 <= node.depth <= 9
        if node.analysis.is_terminal:
            assert node.children == []
        else:
            assert len(node.children) == node.analysis.open_moves
        parent = tree.parent_of(node)
        if parent is not None:
            assert node.depth == parent.depth + 1


def test_full_game_tree_counts():
    # enumeration with the analyzer alone; the arena would hold ~550k nodes
    totals = {"nodes": 0, "leaves": 0, "x": 0, "o": 0, "draw": 0}

    def walk(board, depth):
        totals["nodes"] += 1
        assert depth <= 9
        a = analyze_board(board)
        if a.is_terminal:
            totals["leaves"] += 1
            totals[a.winner.lower() if a.winner else "draw"] += 1
            return
        for i in empty_cells(board):
            walk(place(board, i, a.next_player), depth + 1)

    walk(EMPTY_BOARD, 0)
    assert totals["nodes"] == 549946
    assert totals["leaves"] == 255168
    assert totals["x"] == 131184
    assert totals["o"] == 77904
    assert totals["draw"] == 46080


def test_path_from_root(tree):
    root = tree.get_root()
    x0 = _child_at(tree, root, 0)
    tree.toggle_expansion(x0)
    o4 = _child_at(tree, x0, 4)

    assert tree.path_from_root(root) == []
    assert tree.path_from_root(o4) == [Move("X", 0), Move("O", 4)]
    assert tree.describe_path(o4) == ["X → row 1, col 1", "O → row 2, col 2"]


def test_path_matches_moves_played(tree):
    node = tree.get_root()
    played = [4, 0, 8, 2]
    for index in played:
        tree.toggle_expansion(node)
        node = _child_at(tree, node, index)
    assert [m.index for m in tree.path_from_root(node)] == played
    assert [m.player for m in tree.path_from_root(node)] == ["X", "O", "X", "O"]
    assert node.depth == len(played)


def test_selection_does_not_change_structure(tree):
    before = {nid: (n.children, n.expanded) for nid, n in tree.nodes.items()}
    child = _child_at(tree, tree.get_root(), 3)
    tree.on_select(child.id)
    assert tree.selected is child
    after = {nid: (n.children, n.expanded) for nid, n in tree.nodes.items()}
    assert before == after


def test_host_events(tree):
    root = tree.get_root()
    child_id = root.children[2]

    tree.on_expand_toggle(child_id)
    assert tree.get_node(child_id).expanded is True
    assert tree.selected is root

    tree.on_click(child_id)
    assert tree.get_node(child_id).expanded is False
    assert tree.selected.id == child_id


def test_unknown_node(tree):
    with pytest.raises(UnknownNodeError):
        tree.get_node(10_000)
    with pytest.raises(LookupError):
        tree.on_select(-1)


def test_malformed_start_board_rejected():
    with pytest.raises(ValueError):
        GameTree("XX")


@pytest.mark.parametrize("bad", ["XX", "ZZZ......", "x........"])
def test_create_node_rejects_malformed_board(tree, bad):
    count = len(tree.nodes)
    with pytest.raises(InvalidBoardError):
        tree.create_node(bad, None, 0)
    assert len(tree.nodes) == count


@pytest.mark.parametrize("board", ["X........", "XO.......", "XO..X....", "XOXO....."])
def test_started_position_keeps_turn_parity(board):
    tree = GameTree(board)
    root = tree.get_root()
    assert root.depth == 9 - board.count(".")
    for node in [root] + tree.children_of(root):
        expected = "X" if node.depth % 2 == 0 else "O"
        assert node.analysis.next_player == expected
