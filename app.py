# app.py
from __future__ import annotations
from flask import Flask, jsonify, request
import logging
import threading
import time
import uuid
from typing import Dict, Any, List, Optional, Tuple

from flask_cors import CORS

import config
from board import describe_move
from tree import GameTree, Node, UnknownNodeError

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# session_id -> {"id", "tree", "lock", "created_ts"}
SESSIONS: Dict[str, Dict[str, Any]] = {}
_SESSIONS_LOCK = threading.Lock()


@app.get("/api/health")
def health():
    return jsonify({"ok": True, "sessions": len(SESSIONS)})


# ------------------ SESSION API ------------------
@app.get("/api/new")
def new_session():
    sid = str(uuid.uuid4())
    session = {
        "id": sid,
        "tree": GameTree(),
        "lock": threading.Lock(),
        "created_ts": time.time(),
    }
    with _SESSIONS_LOCK:
        SESSIONS[sid] = session
        _evict_oldest_locked()
    logger.info("session %s créée (%d actives)", sid, len(SESSIONS))

    with session["lock"]:
        return jsonify(_public_session(session))


@app.get("/api/state")
def state():
    session = _get_session(request.args.get("session_id"))
    if session is None:
        return _error("Session introuvable", 404)
    with session["lock"]:
        return jsonify(_public_session(session))


@app.delete("/api/session")
def delete_session():
    sid = request.args.get("session_id")
    with _SESSIONS_LOCK:
        session = SESSIONS.pop(sid, None) if sid else None
    if session is None:
        return _error("Session introuvable", 404)
    logger.info("session %s supprimée", sid)
    return jsonify({"ok": True})


# ------------------ ÉVÉNEMENTS (onExpandToggle / onSelect) ------------------
@app.post("/api/toggle")
def toggle():
    return _apply_event(lambda tree, node_id: tree.on_expand_toggle(node_id))


@app.post("/api/select")
def select():
    return _apply_event(lambda tree, node_id: tree.on_select(node_id))


@app.post("/api/click")
def click():
    return _apply_event(lambda tree, node_id: tree.on_click(node_id))


@app.get("/api/node")
def node_detail():
    session = _get_session(request.args.get("session_id"))
    if session is None:
        return _error("Session introuvable", 404)

    node_id, err = _parse_node_id(request.args.get("node_id"))
    if err:
        return _error(err, 400)

    with session["lock"]:
        tree: GameTree = session["tree"]
        try:
            node = tree.get_node(node_id)
        except UnknownNodeError as e:
            return _error(str(e), 404)
        payload = _public_node(tree, node)
        payload.update(_public_path(tree, node))
        payload["children"] = [_public_node(tree, c) for c in tree.visible_children(node)]
        return jsonify(payload)


def _apply_event(action) -> Any:
    data = request.get_json(force=True, silent=True) or {}
    if not isinstance(data, dict):
        return _error("corps JSON invalide", 400)
    session = _get_session(data.get("session_id"))
    if session is None:
        return _error("Session introuvable", 404)

    node_id, err = _parse_node_id(data.get("node_id"))
    if err:
        return _error(err, 400)

    with session["lock"]:
        tree: GameTree = session["tree"]
        try:
            action(tree, node_id)
        except UnknownNodeError as e:
            return _error(str(e), 404)
        return jsonify(_public_session(session))


# ------------------ Helpers ------------------
def _error(message: str, status: int) -> Tuple[Any, int]:
    logger.warning("requête refusée (%d): %s", status, message)
    return jsonify({"error": message}), status


def _get_session(sid: Optional[str]) -> Optional[Dict[str, Any]]:
    if not sid:
        return None
    with _SESSIONS_LOCK:
        return SESSIONS.get(sid)


def _evict_oldest_locked() -> None:
    while len(SESSIONS) > config.MAX_SESSIONS:
        oldest = next(iter(SESSIONS))
        SESSIONS.pop(oldest, None)
        logger.info("session %s évincée", oldest)


def _parse_node_id(raw: Any) -> Tuple[int, str]:
    if raw is None or raw == "":
        return 0, "node_id manquant"
    if isinstance(raw, bool):
        return 0, "node_id invalide"
    if isinstance(raw, int):
        return raw, ""
    # pas de troncature : 2.9 ou "2.9" sont refusés
    if isinstance(raw, str):
        try:
            return int(raw), ""
        except ValueError:
            pass
    return 0, "node_id invalide"


def _public_move(node: Node) -> Optional[Dict[str, Any]]:
    if node.move is None:
        return None
    return {
        "player": node.move.player,
        "index": node.move.index,
        "row": node.move.row,
        "col": node.move.col,
        "text": describe_move(node.move),
    }


def _public_node(tree: GameTree, node: Node) -> Dict[str, Any]:
    a = node.analysis
    return {
        "id": node.id,
        "parent_id": node.parent_id,
        "board": node.board,
        "cells": ["" if c == "." else c for c in node.board],
        "move": _public_move(node),
        "depth": node.depth,
        "label": node.label,
        "winner": a.winner,
        "winning_line": list(a.winning_line),
        "is_terminal": a.is_terminal,
        "is_draw": a.is_draw,
        "next_player": a.next_player,
        "open_moves": a.open_moves,
        "status": a.status_text,
        "state": tree.state(node),
        "expanded": node.expanded,
        "expandable": tree.is_expandable(node),
        "has_children": bool(node.children),
    }


def _public_path(tree: GameTree, node: Node) -> Dict[str, Any]:
    path: List[str] = tree.describe_path(node)
    return {
        "path": path,
        "path_text": "Start position." if not path else "Sequence: " + " ".join(path),
    }


def _public_session(session: Dict[str, Any]) -> Dict[str, Any]:
    tree: GameTree = session["tree"]
    selected = _public_node(tree, tree.selected)
    selected.update(_public_path(tree, tree.selected))
    return {
        "session_id": session["id"],
        "root_id": tree.get_root().id,
        "selected_id": tree.selected.id,
        "selected": selected,
        "nodes": [_public_node(tree, n) for n in tree.visible_nodes()],
        "links": [{"source": p, "target": c} for p, c in tree.visible_links()],
    }


if __name__ == "__main__":
    config.setup_logging()
    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG, use_reloader=False)
