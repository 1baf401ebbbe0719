# tree.py
from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Dict, Iterator, List, Optional, Tuple

from board import (
    EMPTY_BOARD,
    Analysis,
    BoardLike,
    Move,
    analyze_board,
    describe_move,
    empty_cells,
    node_label,
    place,
    validate_board,
)

logger = logging.getLogger(__name__)

UNINITIALIZED = "uninitialized-children"
COLLAPSED = "materialized-collapsed"
EXPANDED = "materialized-expanded"
TERMINAL = "terminal-leaf"


class UnknownNodeError(LookupError):
    pass


@dataclass
class Node:
    id: int
    board: str
    move: Optional[Move]
    depth: int
    analysis: Analysis
    parent_id: Optional[int] = None
    children: Optional[List[int]] = None  # None = pas encore calculés
    expanded: bool = False
    label: str = field(default="")


# ----------------- Arbre (arène de nœuds indexée par id) -----------------
class GameTree:
    """
    Arbre de jeu paresseux : les enfants d'un nœud ne sont créés qu'à la
    première expansion, puis conservés (replier masque, ne supprime pas).
    Les nœuds sont possédés par l'arène `nodes`; parent_id n'est qu'un index.
    """

    def __init__(self, board: BoardLike = EMPTY_BOARD, expand_root: bool = True):
        self.nodes: Dict[int, Node] = {}
        self._next_id = 0
        board = validate_board(board)
        # profondeur = coups déjà joués : X à profondeur paire, O à impaire
        self.root = self.create_node(board, None, 9 - board.count("."))
        self.selected: Node = self.root
        if expand_root:
            self.toggle_expansion(self.root)

    # ----------------- Création / matérialisation -----------------
    def create_node(self, board: str, move: Optional[Move], depth: int, parent_id: Optional[int] = None) -> Node:
        board = validate_board(board)
        self._next_id += 1
        analysis = analyze_board(board)
        node = Node(
            id=self._next_id,
            board=board,
            move=move,
            depth=depth,
            analysis=analysis,
            parent_id=parent_id,
            label=node_label(analysis),
        )
        if analysis.is_terminal:
            node.children = []
        self.nodes[node.id] = node
        return node

    def materialize_children(self, node: Node) -> List[Node]:
        """
        Idempotent : ne calcule les enfants qu'une seule fois, dans l'ordre
        croissant des cases vides.
        """
        if node.children is None:
            player = node.analysis.next_player
            node.children = [
                self.create_node(place(node.board, i, player), Move(player, i), node.depth + 1, node.id).id
                for i in empty_cells(node.board)
            ]
            logger.debug("node %d: %d enfants créés", node.id, len(node.children))
        return self.children_of(node)

    def children_of(self, node: Node) -> List[Node]:
        return [self.nodes[cid] for cid in node.children or []]

    # ----------------- Expansion / sélection -----------------
    def is_expandable(self, node: Node) -> bool:
        return not node.analysis.is_terminal and node.analysis.open_moves > 0

    def toggle_expansion(self, node: Node) -> bool:
        if not self.is_expandable(node):
            return node.expanded
        if node.expanded:
            node.expanded = False
        else:
            self.materialize_children(node)
            node.expanded = True
        logger.debug("node %d: expanded=%s", node.id, node.expanded)
        return node.expanded

    def select_node(self, node: Node) -> Node:
        self.selected = node
        return node

    def state(self, node: Node) -> str:
        if node.analysis.is_terminal:
            return TERMINAL
        if node.children is None:
            return UNINITIALIZED
        return EXPANDED if node.expanded else COLLAPSED

    # ----------------- Accès -----------------
    def get_root(self) -> Node:
        return self.root

    def get_node(self, node_id: int) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise UnknownNodeError(f"Nœud introuvable: {node_id}") from None

    def parent_of(self, node: Node) -> Optional[Node]:
        if node.parent_id is None:
            return None
        return self.nodes[node.parent_id]

    def path_from_root(self, node: Node) -> List[Move]:
        moves: List[Move] = []
        current: Optional[Node] = node
        while current is not None and current.move is not None:
            moves.append(current.move)
            current = self.parent_of(current)
        moves.reverse()
        return moves

    def describe_path(self, node: Node) -> List[str]:
        return [describe_move(m) for m in self.path_from_root(node)]

    # ----------------- Parcours visible (pour le rendu) -----------------
    def visible_children(self, node: Node) -> List[Node]:
        if not node.expanded:
            return []
        return self.children_of(node)

    def iter_visible(self) -> Iterator[Node]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(self.visible_children(node)))

    def visible_nodes(self) -> List[Node]:
        return list(self.iter_visible())

    def visible_links(self) -> List[Tuple[int, int]]:
        return [
            (node.parent_id, node.id)
            for node in self.iter_visible()
            if node.parent_id is not None
        ]

    # ----------------- Événements de l'hôte -----------------
    def on_expand_toggle(self, node_id: int) -> Node:
        node = self.get_node(node_id)
        self.toggle_expansion(node)
        return node

    def on_select(self, node_id: int) -> Node:
        return self.select_node(self.get_node(node_id))

    def on_click(self, node_id: int) -> Node:
        node = self.on_expand_toggle(node_id)
        return self.select_node(node)
