from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
from scipy import sparse

from ..exceptions import (
    AsymmetricReadArcError,
    DuplicateArcError,
    DuplicateIdentifierError,
    InvalidArcError,
    InvalidArcWeightError,
    InvalidLevelError,
    IsolatedTransitionError,
    ModelError,
    RateError,
    UnknownReferenceError,
)

LOGGER = logging.getLogger(__name__)

ArcPairs = Tuple[Tuple[int, int], ...]


# ---------------------------------------------------------------------------
# Declarative building blocks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Place:
    """
    A named continuous quantity in the net (a relaxed token count).

    :param id: Unique identifier.
    :type id: str
    :param initial: Initial level. Fractional and negative values are kept
        as given; the integrator never rounds or clamps state values.
    :type initial: float
    :param metadata: Optional display metadata (coordinates, ``@type``...),
        ignored by the engine.
    :type metadata: Dict[str, Any]
    """

    id: str
    initial: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Transition:
    """
    A named reaction with a declared rate constant.

    :param id: Unique identifier.
    :type id: str
    :param rate: Declared rate constant (``>= 0``). A zero rate keeps the
        transition structurally present but inert. Rate policies may
        override it per run without rebuilding the net.
    :type rate: float
    :param metadata: Optional display metadata, ignored by the engine.
    :type metadata: Dict[str, Any]
    """

    id: str
    rate: float = 1.0
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Arc:
    """
    Directed stoichiometric edge between a place and a transition.

    :param source: Source id (place for a consuming arc, transition for a
        producing arc).
    :type source: str
    :param target: Target id.
    :type target: str
    :param weight: Stoichiometric coefficient, a strictly positive integer.
    :type weight: int
    """

    source: str
    target: str
    weight: int = 1


PlaceLike = Union[Place, Mapping[str, Any], str, Tuple[str, float]]
TransitionLike = Union[Transition, Mapping[str, Any], str, Tuple[str, float]]
ArcLike = Union[Arc, Mapping[str, Any], Tuple[str, str], Tuple[str, str, int]]


def _split_metadata(obj: Mapping[str, Any], keys: Tuple[str, ...]) -> Dict[str, Any]:
    return {k: v for k, v in obj.items() if k not in keys}


def _as_place(obj: PlaceLike) -> Place:
    if isinstance(obj, Place):
        return obj
    if isinstance(obj, str):
        return Place(id=obj)
    if isinstance(obj, Mapping):
        if "id" not in obj:
            raise ModelError(f"Place declaration without 'id': {dict(obj)!r}")
        return Place(
            id=str(obj["id"]),
            initial=obj.get("initial", 0.0),
            metadata=_split_metadata(obj, ("id", "initial")),
        )
    if isinstance(obj, tuple) and len(obj) == 2:
        return Place(id=str(obj[0]), initial=obj[1])
    raise ModelError(f"Cannot interpret {obj!r} as a place.")


def _as_transition(obj: TransitionLike) -> Transition:
    if isinstance(obj, Transition):
        return obj
    if isinstance(obj, str):
        return Transition(id=obj)
    if isinstance(obj, Mapping):
        if "id" not in obj:
            raise ModelError(f"Transition declaration without 'id': {dict(obj)!r}")
        return Transition(
            id=str(obj["id"]),
            rate=obj.get("rate", 1.0),
            metadata=_split_metadata(obj, ("id", "rate")),
        )
    if isinstance(obj, tuple) and len(obj) == 2:
        return Transition(id=str(obj[0]), rate=obj[1])
    raise ModelError(f"Cannot interpret {obj!r} as a transition.")


def _as_arc(obj: ArcLike) -> Arc:
    if isinstance(obj, Arc):
        return obj
    if isinstance(obj, Mapping):
        try:
            return Arc(
                source=str(obj["source"]),
                target=str(obj["target"]),
                weight=obj.get("weight", 1),
            )
        except KeyError as exc:
            raise ModelError(f"Arc declaration without {exc}: {dict(obj)!r}") from exc
    if isinstance(obj, tuple) and len(obj) in (2, 3):
        weight = obj[2] if len(obj) == 3 else 1
        return Arc(source=str(obj[0]), target=str(obj[1]), weight=weight)
    raise ModelError(f"Cannot interpret {obj!r} as an arc.")


def _coerce_weight(arc: Arc) -> int:
    w = arc.weight
    if isinstance(w, bool) or not isinstance(w, Real):
        raise InvalidArcWeightError(
            f"Arc {arc.source!r} -> {arc.target!r} has non-numeric weight {w!r}."
        )
    if not math.isfinite(w) or w != int(w) or w < 1:
        raise InvalidArcWeightError(
            f"Arc {arc.source!r} -> {arc.target!r} has weight {w!r}; "
            "weights must be strictly positive integers."
        )
    return int(w)


def _coerce_level(place: Place) -> float:
    lvl = place.initial
    if isinstance(lvl, bool) or not isinstance(lvl, Real) or not math.isfinite(lvl):
        raise InvalidLevelError(
            f"Place {place.id!r} has invalid initial level {lvl!r}."
        )
    return float(lvl)


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


# ---------------------------------------------------------------------------
# Indexed topology (shared, never mutated after build)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Topology:
    places: Tuple[Place, ...]
    transitions: Tuple[Transition, ...]
    arcs: Tuple[Arc, ...]
    place_index: Mapping[str, int]
    transition_index: Mapping[str, int]
    consuming: Tuple[ArcPairs, ...]
    producing: Tuple[ArcPairs, ...]
    read: Tuple[ArcPairs, ...]
    in_place: np.ndarray
    in_weight: np.ndarray
    group_starts: np.ndarray
    stoich: np.ndarray
    stoich_eff: sparse.csr_matrix


def _index_topology(
    places: Tuple[Place, ...],
    transitions: Tuple[Transition, ...],
    arcs: Tuple[Arc, ...],
) -> _Topology:
    place_index = {p.id: i for i, p in enumerate(places)}
    transition_index = {t.id: j for j, t in enumerate(transitions)}
    n_p, n_t = len(places), len(transitions)

    consuming: List[List[Tuple[int, int]]] = [[] for _ in range(n_t)]
    producing: List[List[Tuple[int, int]]] = [[] for _ in range(n_t)]
    for arc in arcs:
        if arc.source in place_index:
            consuming[transition_index[arc.target]].append(
                (place_index[arc.source], arc.weight)
            )
        else:
            producing[transition_index[arc.source]].append(
                (place_index[arc.target], arc.weight)
            )

    read: List[List[Tuple[int, int]]] = [[] for _ in range(n_t)]
    for j in range(n_t):
        out_w = dict(producing[j])
        for p, w in consuming[j]:
            if p not in out_w:
                continue
            if out_w[p] != w:
                raise AsymmetricReadArcError(
                    f"Place {places[p].id!r} and transition {transitions[j].id!r} "
                    f"are joined both ways with unequal weights ({w} in, "
                    f"{out_w[p]} out)."
                )
            read[j].append((p, w))

    # Flat kinetics layout: one contiguous group of input factors per
    # transition; transitions without inputs read a sentinel slot (index
    # n_p) that the evaluator pins to 1.0.
    in_place: List[int] = []
    in_weight: List[float] = []
    starts: List[int] = []
    for j in range(n_t):
        starts.append(len(in_place))
        if not consuming[j]:
            in_place.append(n_p)
            in_weight.append(1.0)
            continue
        for p, w in consuming[j]:
            in_place.append(p)
            in_weight.append(float(w))

    rows: List[int] = []
    cols: List[int] = []
    data: List[float] = []
    S = np.zeros((n_p, n_t), dtype=float)
    for j in range(n_t):
        read_places = {p for p, _ in read[j]}
        for p, w in consuming[j]:
            if p in read_places:
                continue
            rows.append(p)
            cols.append(j)
            data.append(-float(w))
            S[p, j] -= w
        for p, w in producing[j]:
            if p in read_places:
                continue
            rows.append(p)
            cols.append(j)
            data.append(float(w))
            S[p, j] += w

    stoich_eff = sparse.csr_matrix(
        (
            np.asarray(data, dtype=float),
            (np.asarray(rows, dtype=np.intp), np.asarray(cols, dtype=np.intp)),
        ),
        shape=(n_p, n_t),
    )

    return _Topology(
        places=places,
        transitions=transitions,
        arcs=arcs,
        place_index=MappingProxyType(place_index),
        transition_index=MappingProxyType(transition_index),
        consuming=tuple(tuple(c) for c in consuming),
        producing=tuple(tuple(c) for c in producing),
        read=tuple(tuple(r) for r in read),
        in_place=_readonly(np.asarray(in_place, dtype=np.intp)),
        in_weight=_readonly(np.asarray(in_weight, dtype=float)),
        group_starts=_readonly(np.asarray(starts, dtype=np.intp)),
        stoich=_readonly(S),
        stoich_eff=stoich_eff,
    )


# ---------------------------------------------------------------------------
# Net
# ---------------------------------------------------------------------------


class Net:
    """
    Validated, indexed and immutable continuous Petri net.

    Instances are created with :func:`build` (or :meth:`Net.build`). String
    ids are resolved to dense integer indices once, so the kinetics hot
    loop never hashes strings. A net is safe to share across concurrent
    simulation runs; :meth:`with_initial` derives variants that reuse the
    same topology.

    .. code-block:: python

        from petriflow.Net import build

        net = build(
            places=[{"id": "A", "initial": 1.0}, {"id": "B"}],
            transitions=["t"],
            arcs=[("A", "t"), ("t", "B")],
        )
        net.consuming("t")   # ((0, 1),)
    """

    __slots__ = ("_topology", "_initial")

    def __init__(self, topology: _Topology, initial: np.ndarray) -> None:
        self._topology = topology
        self._initial = _readonly(np.array(initial, dtype=float))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def build(
        cls,
        places: Iterable[PlaceLike],
        transitions: Iterable[TransitionLike],
        arcs: Iterable[ArcLike],
    ) -> "Net":
        """Alias of :func:`build`."""
        return build(places, transitions, arcs)

    def with_initial(self, levels: Mapping[str, float]) -> "Net":
        """
        Return a net sharing this topology with some initial levels replaced.

        :param levels: Mapping place id -> new initial level.
        :type levels: Mapping[str, float]
        :returns: New :class:`Net`; ``self`` is unchanged.
        :rtype: Net
        :raises UnknownReferenceError: If a key is not a place id.
        :raises InvalidLevelError: If a level is not finite.
        """
        initial = np.array(self._initial, dtype=float)
        for pid, lvl in levels.items():
            initial[self.place_index(pid)] = _coerce_level(Place(id=pid, initial=lvl))
        return Net(self._topology, initial)

    # ------------------------------------------------------------------
    # Identity / indexing
    # ------------------------------------------------------------------
    @property
    def place_ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self._topology.places)

    @property
    def transition_ids(self) -> Tuple[str, ...]:
        return tuple(t.id for t in self._topology.transitions)

    @property
    def n_places(self) -> int:
        return len(self._topology.places)

    @property
    def n_transitions(self) -> int:
        return len(self._topology.transitions)

    @property
    def places(self) -> Tuple[Place, ...]:
        """Places with their current initial levels."""
        return tuple(
            Place(id=p.id, initial=float(lvl), metadata=p.metadata)
            for p, lvl in zip(self._topology.places, self._initial)
        )

    @property
    def transitions(self) -> Tuple[Transition, ...]:
        return self._topology.transitions

    @property
    def arcs(self) -> Tuple[Arc, ...]:
        """Arcs in declaration order, weights normalized to ``int``."""
        return self._topology.arcs

    def has_place(self, place_id: str) -> bool:
        return place_id in self._topology.place_index

    def has_transition(self, transition_id: str) -> bool:
        return transition_id in self._topology.transition_index

    def place_index(self, place_id: str) -> int:
        try:
            return self._topology.place_index[place_id]
        except KeyError:
            raise UnknownReferenceError(f"Unknown place id {place_id!r}.") from None

    def transition_index(self, transition_id: str) -> int:
        try:
            return self._topology.transition_index[transition_id]
        except KeyError:
            raise UnknownReferenceError(
                f"Unknown transition id {transition_id!r}."
            ) from None

    # ------------------------------------------------------------------
    # Per-transition arc views
    # ------------------------------------------------------------------
    def consuming(self, transition_id: str) -> ArcPairs:
        """Ordered ``(place_index, weight)`` pairs of the consuming arcs."""
        return self._topology.consuming[self.transition_index(transition_id)]

    def producing(self, transition_id: str) -> ArcPairs:
        """Ordered ``(place_index, weight)`` pairs of the producing arcs."""
        return self._topology.producing[self.transition_index(transition_id)]

    def read_arcs(self, transition_id: str) -> ArcPairs:
        """``(place_index, weight)`` pairs acting as catalysts (no net effect)."""
        return self._topology.read[self.transition_index(transition_id)]

    # ------------------------------------------------------------------
    # State and rates
    # ------------------------------------------------------------------
    def initial_state(self) -> np.ndarray:
        """Fresh, writable copy of the initial state vector."""
        return np.array(self._initial, dtype=float)

    def initial_levels(self) -> Dict[str, float]:
        return {p.id: float(v) for p, v in zip(self._topology.places, self._initial)}

    def declared_rates(self) -> Dict[str, float]:
        return {t.id: float(t.rate) for t in self._topology.transitions}

    def stoichiometric_matrix(self) -> np.ndarray:
        """
        Places x transitions matrix :math:`S = S^+ - S^-`.

        Read-arc pairs contribute exactly zero. The returned array is
        read-only.
        """
        return self._topology.stoich

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------
    def __contains__(self, item: object) -> bool:
        return item in self._topology.place_index or item in self._topology.transition_index

    def __repr__(self) -> str:
        return (
            f"Net(places={self.n_places}, transitions={self.n_transitions}, "
            f"arcs={len(self._topology.arcs)})"
        )


def build(
    places: Iterable[PlaceLike],
    transitions: Iterable[TransitionLike],
    arcs: Iterable[ArcLike],
) -> Net:
    """
    Validate and index a continuous Petri net.

    Every transition must have at least one adjacent arc, arcs must join a
    place and a transition that both exist, weights must be strictly
    positive integers, and a place/transition pair joined in both
    directions must use equal weights (a read arc).

    :param places: Place declarations (:class:`Place`, ``{"id", "initial"}``
        mappings, ``(id, initial)`` pairs or bare ids).
    :type places: Iterable[PlaceLike]
    :param transitions: Transition declarations (:class:`Transition`,
        ``{"id", "rate"}`` mappings, ``(id, rate)`` pairs or bare ids).
    :type transitions: Iterable[TransitionLike]
    :param arcs: Arc declarations (:class:`Arc`, ``{"source", "target",
        "weight"}`` mappings or ``(source, target[, weight])`` tuples).
    :type arcs: Iterable[ArcLike]
    :returns: Immutable net.
    :rtype: Net
    :raises ModelError: On any structural defect (see :mod:`petriflow.exceptions`).
    :raises RateError: If a declared transition rate is negative or not finite.
    """
    place_list = tuple(_as_place(p) for p in places)
    transition_list = tuple(_as_transition(t) for t in transitions)

    seen: Dict[str, str] = {}
    for kind, items in (("place", place_list), ("transition", transition_list)):
        for item in items:
            if item.id in seen:
                raise DuplicateIdentifierError(
                    f"Id {item.id!r} declared as {seen[item.id]} and {kind}."
                )
            seen[item.id] = kind

    levels = [_coerce_level(p) for p in place_list]
    for t in transition_list:
        r = t.rate
        if isinstance(r, bool) or not isinstance(r, Real) or not math.isfinite(r) or r < 0:
            raise RateError(f"Transition {t.id!r} has invalid rate {r!r}.")

    normalized: List[Arc] = []
    pairs_seen = set()
    touched = set()
    for raw in arcs:
        arc = _as_arc(raw)
        for end in (arc.source, arc.target):
            if end not in seen:
                raise UnknownReferenceError(
                    f"Arc {arc.source!r} -> {arc.target!r} references unknown id {end!r}."
                )
        if seen[arc.source] == seen[arc.target]:
            raise InvalidArcError(
                f"Arc {arc.source!r} -> {arc.target!r} joins two {seen[arc.source]}s."
            )
        weight = _coerce_weight(arc)
        key = (arc.source, arc.target)
        if key in pairs_seen:
            raise DuplicateArcError(f"Arc {arc.source!r} -> {arc.target!r} declared twice.")
        pairs_seen.add(key)
        touched.add(arc.target if seen[arc.target] == "transition" else arc.source)
        normalized.append(Arc(source=arc.source, target=arc.target, weight=weight))

    for t in transition_list:
        if t.id not in touched:
            raise IsolatedTransitionError(f"Transition {t.id!r} has no adjacent arc.")

    topology = _index_topology(place_list, transition_list, tuple(normalized))
    LOGGER.debug(
        "Built net: %d places, %d transitions, %d arcs (%d read pairs)",
        len(place_list),
        len(transition_list),
        len(normalized),
        sum(len(r) for r in topology.read),
    )
    return Net(topology, np.asarray(levels, dtype=float))


def kinetics_layout(net: Net) -> Tuple[np.ndarray, np.ndarray, np.ndarray, sparse.csr_matrix]:
    """
    Precomputed index arrays consumed by the kinetics evaluator.

    :returns: ``(in_place, in_weight, group_starts, stoich_eff)``.
    """
    topo = net._topology
    return topo.in_place, topo.in_weight, topo.group_starts, topo.stoich_eff


def same_topology(a: Net, b: Net) -> bool:
    """``True`` if both nets share one indexed topology (see :meth:`Net.with_initial`)."""
    return a._topology is b._topology


def optional_levels(
    net: Net, levels: Optional[Mapping[str, float]]
) -> Optional[np.ndarray]:
    """Resolve a ``{place_id: level}`` override into a full state vector."""
    if levels is None:
        return None
    state = net.initial_state()
    for pid, lvl in levels.items():
        state[net.place_index(pid)] = float(lvl)
    return state
