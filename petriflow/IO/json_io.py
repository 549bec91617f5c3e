from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Union

from ..exceptions import ModelError
from ..Net.core import Arc, Net, Place, Transition, build

_PLACE_KEYS = ("id", "initial")
_TRANSITION_KEYS = ("id", "rate")


def _scalar(value: Any, what: str) -> Any:
    """
    Unwrap the single-element list form used for ``initial``/``weight``.

    :param value: ``[n]`` or ``n``.
    :param what: Description used in error messages.
    :type what: str
    :raises ModelError: On an empty or multi-element list.
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            raise ModelError(f"{what} must be a number or a one-element list, got {value!r}.")
        return value[0]
    return value


def _entries(section: Any, name: str) -> List[Dict[str, Any]]:
    """Normalize a ``{id: {...}}`` mapping or a ``[{"id": ...}]`` list."""
    if section is None:
        return []
    if isinstance(section, Mapping):
        out = []
        for key, body in section.items():
            if body is None:
                body = {}
            if not isinstance(body, Mapping):
                raise ModelError(f"{name} {key!r} must be an object, got {body!r}.")
            out.append({**body, "id": str(key)})
        return out
    if isinstance(section, list):
        for body in section:
            if not isinstance(body, Mapping) or "id" not in body:
                raise ModelError(f"Every entry of {name}s must be an object with an 'id'.")
        return [{**body, "id": str(body["id"])} for body in section]
    raise ModelError(
        f"'{name.lower()}s' must be an object or a list, got {type(section).__name__}."
    )


def net_from_dict(doc: Mapping[str, Any]) -> Net:
    """
    Build a :class:`Net` from a JSON-like document.

    Expected shape (the pflow schema)::

        {
          "places": {"A": {"initial": [1]}, "B": {"initial": [0]}},
          "transitions": {"t": {"rate": 1.0}},
          "arcs": [{"source": "A", "target": "t", "weight": [1]},
                   {"source": "t", "target": "B"}]
        }

    ``places`` and ``transitions`` may also be lists of objects with an
    ``"id"`` key. ``initial`` and ``weight`` accept a bare number or a
    one-element list. Extra keys (``@type``, ``x``, ``y``, ...) are kept as
    metadata on places and transitions and ignored on arcs.

    :param doc: Parsed JSON document.
    :type doc: Mapping[str, Any]
    :returns: Validated net.
    :rtype: Net
    :raises ModelError: On a malformed document or invalid net.
    """
    if not isinstance(doc, Mapping):
        raise ModelError(f"Net document must be an object, got {type(doc).__name__}.")

    places = []
    for body in _entries(doc.get("places"), "Place"):
        initial = _scalar(body.get("initial", 0.0), f"Initial level of {body['id']!r}")
        meta = {k: v for k, v in body.items() if k not in _PLACE_KEYS}
        places.append(Place(id=body["id"], initial=initial, metadata=meta))

    transitions = []
    for body in _entries(doc.get("transitions"), "Transition"):
        meta = {k: v for k, v in body.items() if k not in _TRANSITION_KEYS}
        transitions.append(
            Transition(id=body["id"], rate=body.get("rate", 1.0), metadata=meta)
        )

    raw_arcs = doc.get("arcs", [])
    if not isinstance(raw_arcs, list):
        raise ModelError("'arcs' must be a list.")
    arcs = []
    for body in raw_arcs:
        if not isinstance(body, Mapping) or "source" not in body or "target" not in body:
            raise ModelError(f"Arc must be an object with 'source' and 'target': {body!r}")
        src, dst = str(body["source"]), str(body["target"])
        weight = _scalar(body.get("weight", 1), f"Weight of arc {src!r} -> {dst!r}")
        arcs.append(Arc(source=src, target=dst, weight=weight))

    return build(places, transitions, arcs)


def net_from_json(text: Union[str, bytes]) -> Net:
    """Parse a JSON string; invalid JSON raises :class:`ModelError`."""
    try:
        doc = json.loads(text)
    except ValueError as exc:
        raise ModelError(f"Invalid net JSON: {exc}") from exc
    return net_from_dict(doc)


def load_net(path: str) -> Net:
    """Read a net from a JSON file."""
    with open(path, "r", encoding="utf-8") as fh:
        return net_from_json(fh.read())


def net_to_dict(net: Net) -> Dict[str, Any]:
    """
    Export a net in the same schema :func:`net_from_dict` reads.

    Levels and weights use the one-element list form; place and transition
    metadata are written back alongside them.
    """
    places = {
        p.id: {**p.metadata, "initial": [p.initial]} for p in net.places
    }
    transitions = {
        t.id: {**t.metadata, "rate": float(t.rate)} for t in net.transitions
    }
    arcs = [
        {"source": a.source, "target": a.target, "weight": [a.weight]}
        for a in net.arcs
    ]
    return {"places": places, "transitions": transitions, "arcs": arcs}


def net_to_json(net: Net, indent: Union[int, None] = 2) -> str:
    return json.dumps(net_to_dict(net), indent=indent)
