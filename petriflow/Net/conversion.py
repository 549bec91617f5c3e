# Net/conversion.py
from __future__ import annotations

from typing import Any, Dict, List, Tuple

import networkx as nx

from .core import Arc, Net, Place, Transition, build


# ======================================================================
# Net  <->  Bipartite place/transition graph
# ======================================================================


def net_to_bipartite(
    net: Net,
    *,
    place_prefix: str = "P:",
    transition_prefix: str = "T:",
    bipartite_values: Tuple[int, int] = (0, 1),
) -> nx.DiGraph:
    """
    Export a net to a **bipartite** NetworkX DiGraph with arcs
    ``place → transition → place``.

    Node conventions follow the CRN bipartite layout:

    - places: ``kind="place"``, ``bipartite=0``, ``label``, ``initial``.
    - transitions: ``kind="transition"``, ``bipartite=1``, ``label``, ``rate``.

    Edges carry ``role`` (``"reactant"`` for consuming arcs, ``"product"``
    for producing arcs), ``stoich`` (the arc weight) and ``read=True`` when
    the arc belongs to a read-arc pair.

    :param net: Net to export.
    :type net: Net
    :param place_prefix: Prefix for place node ids.
    :type place_prefix: str
    :param transition_prefix: Prefix for transition node ids.
    :type transition_prefix: str
    :param bipartite_values: Bipartite marker values ``(place, transition)``.
    :type bipartite_values: Tuple[int, int]
    :returns: Bipartite DiGraph.
    :rtype: networkx.DiGraph

    **Examples**
    ----------
    >>> G = net_to_bipartite(net)
    >>> set(nx.get_node_attributes(G, "kind").values()) == {"place", "transition"}
    True
    """
    G = nx.DiGraph()
    place_val, transition_val = bipartite_values

    for p in net.places:
        G.add_node(
            f"{place_prefix}{p.id}",
            kind="place",
            bipartite=place_val,
            label=p.id,
            initial=p.initial,
        )
    for t in net.transitions:
        G.add_node(
            f"{transition_prefix}{t.id}",
            kind="transition",
            bipartite=transition_val,
            label=t.id,
            rate=float(t.rate),
        )

    place_ids = net.place_ids
    for t in net.transitions:
        read = {place_ids[p] for p, _ in net.read_arcs(t.id)}
        tnode = f"{transition_prefix}{t.id}"
        for p, w in net.consuming(t.id):
            pid = place_ids[p]
            G.add_edge(
                f"{place_prefix}{pid}", tnode, role="reactant", stoich=w, read=pid in read
            )
        for p, w in net.producing(t.id):
            pid = place_ids[p]
            G.add_edge(
                tnode, f"{place_prefix}{pid}", role="product", stoich=w, read=pid in read
            )
    return G


def bipartite_to_net(
    G: nx.DiGraph,
    *,
    label_attr: str = "label",
    stoich_attr: str = "stoich",
) -> Net:
    """
    Reconstruct a :class:`Net` from a bipartite place/transition graph.

    The logical inverse of :func:`net_to_bipartite`. Nodes are classified by
    their ``kind`` attribute (``"place"`` / ``"transition"``), falling back
    to ``bipartite`` (0 / 1). Arc direction is taken from the edge
    direction; the ``role`` attribute is informational.

    :param G: Bipartite DiGraph.
    :type G: networkx.DiGraph
    :param label_attr: Node attribute holding the id (default: ``label``).
    :type label_attr: str
    :param stoich_attr: Edge attribute holding the weight (default: ``stoich``).
    :type stoich_attr: str
    :returns: Validated net (all :func:`build` checks apply).
    :rtype: Net
    :raises ValueError: If a node cannot be classified.
    """
    places: List[Place] = []
    transitions: List[Transition] = []
    labels: Dict[Any, str] = {}

    for n, d in G.nodes(data=True):
        kind = d.get("kind")
        if kind is None:
            kind = {0: "place", 1: "transition"}.get(d.get("bipartite"))
        label = str(d.get(label_attr, n))
        labels[n] = label
        if kind == "place":
            places.append(Place(id=label, initial=d.get("initial", 0.0)))
        elif kind == "transition":
            transitions.append(Transition(id=label, rate=d.get("rate", 1.0)))
        else:
            raise ValueError(f"Cannot classify node {n!r} as place or transition.")

    arcs = [
        Arc(source=labels[u], target=labels[v], weight=ed.get(stoich_attr, 1))
        for u, v, ed in G.edges(data=True)
    ]
    return build(places, transitions, arcs)
