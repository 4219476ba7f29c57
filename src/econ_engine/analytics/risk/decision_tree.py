"""
Decision Tree Evaluation
========================
Expected-value rollback over a decision tree stored as an arena.

The tree is a flat tuple of nodes addressed by index; the root is index 0
and every child index is strictly greater than its parent's. That ordering
makes the structure acyclic by construction and lets evaluation run as a
single reverse sweep (children are always resolved before their parent),
with no recursion depth limit.

Node semantics:
- terminal: expected value = its payoff
- chance:   sum(probability_i * value_i) over children
- decision: max over children; the first child wins ties
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple, Union

from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import coerce_enum, require_finite
from econ_engine.models.results import DecisionTreeResult, NodeEvaluation
from econ_engine.utils.exceptions import InvalidInputError, MalformedTreeError


class NodeKind(str, Enum):
    DECISION = "decision"
    CHANCE = "chance"
    TERMINAL = "terminal"


# "outcome" e' il nome usato dal livello di trasporto per le foglie
_KIND_ALIASES = {"outcome": "terminal", "leaf": "terminal"}


@dataclass(frozen=True)
class TreeNode:
    kind: NodeKind
    name: str
    children: Tuple[int, ...] = ()
    value: Optional[float] = None          # payoff, terminal nodes only
    probability: Optional[float] = None    # branch probability under a chance node

    def __post_init__(self):
        object.__setattr__(self, "kind", coerce_enum(NodeKind, self.kind, f"{self.name}.kind"))
        object.__setattr__(self, "children", tuple(self.children))


@dataclass(frozen=True)
class DecisionTree:
    """Arena of TreeNode records; validated on construction."""

    nodes: Tuple[TreeNode, ...]

    def __post_init__(self):
        if not self.nodes:
            raise MalformedTreeError("Tree has no nodes")

        parent_of = [None] * len(self.nodes)
        for index, node in enumerate(self.nodes):
            if node.kind is NodeKind.TERMINAL:
                if node.children:
                    raise MalformedTreeError("Terminal node cannot have children", node=node.name)
                if node.value is None:
                    raise MalformedTreeError("Terminal node has no value", node=node.name)
            elif not node.children:
                raise MalformedTreeError(f"{node.kind.value.capitalize()} node has no children", node=node.name)

            for child in node.children:
                if not isinstance(child, int) or not index < child < len(self.nodes):
                    raise MalformedTreeError(
                        "Child index must point forward inside the arena",
                        node=node.name,
                        details={"index": index, "child": child},
                    )
                if parent_of[child] is not None:
                    raise MalformedTreeError(
                        "Node has more than one parent",
                        node=self.nodes[child].name,
                        details={"parents": [parent_of[child], index]},
                    )
                parent_of[child] = index

        orphans = [self.nodes[i].name for i in range(1, len(self.nodes)) if parent_of[i] is None]
        if orphans:
            raise MalformedTreeError("Nodes unreachable from the root", details={"nodes": orphans})

    @property
    def root(self) -> TreeNode:
        return self.nodes[0]

    @classmethod
    def from_nested(cls, data: Mapping[str, Any]) -> "DecisionTree":
        """
        Build an arena from the nested transport shape:

            {"type": "decision", "name": ..., "branches": [...]}
            {"type": "chance", "name": ..., "branches": [{"probability": p, ...}]}
            {"type": "outcome", "name": ..., "value": v}

        ``children`` is accepted in place of ``branches`` and ``terminal``
        in place of ``outcome``. Nodes are numbered in pre-order.
        """
        if not isinstance(data, Mapping):
            raise MalformedTreeError("Tree root must be a mapping")

        drafts: List[dict] = []
        seen = set()
        # (mapping, parent index)
        stack = [(data, None)]
        while stack:
            raw, parent = stack.pop()
            if not isinstance(raw, Mapping):
                raise MalformedTreeError("Tree nodes must be mappings", details={"node": repr(raw)})
            if id(raw) in seen:
                raise MalformedTreeError("Node object appears twice (shared subtree or cycle)", node=raw.get("name"))
            seen.add(id(raw))

            index = len(drafts)
            name = str(raw.get("name", f"node_{index}"))
            kind_raw = raw.get("type", raw.get("kind"))
            if isinstance(kind_raw, str):
                kind_raw = _KIND_ALIASES.get(kind_raw.strip().lower(), kind_raw)
            kind = coerce_enum(NodeKind, kind_raw, f"{name}.type")

            value = raw.get("value")
            probability = raw.get("probability")
            drafts.append({
                "kind": kind,
                "name": name,
                "children": [],
                "value": None if value is None else require_finite(value, f"{name}.value"),
                "probability": None if probability is None else require_finite(probability, f"{name}.probability"),
            })
            if parent is not None:
                drafts[parent]["children"].append(index)

            branches = raw.get("branches", raw.get("children")) or []
            # reversed so the first branch is popped (and numbered) first
            for branch in reversed(list(branches)):
                stack.append((branch, index))

        return cls(tuple(
            TreeNode(
                kind=d["kind"],
                name=d["name"],
                children=tuple(d["children"]),
                value=d["value"],
                probability=d["probability"],
            )
            for d in drafts
        ))


def _check_chance_probabilities(tree: DecisionTree, tolerance: float) -> None:
    for node in tree.nodes:
        if node.kind is not NodeKind.CHANCE:
            continue
        probabilities = []
        for child in node.children:
            p = tree.nodes[child].probability
            if p is None:
                raise MalformedTreeError("Chance branch has no probability", node=tree.nodes[child].name)
            if p < 0:
                raise InvalidInputError(
                    "Probability cannot be negative", field=f"{tree.nodes[child].name}.probability", value=p
                )
            probabilities.append(p)
        total = sum(probabilities)
        if abs(total - 1.0) > tolerance:
            raise InvalidInputError(
                "Chance node probabilities must sum to 1",
                field=f"{node.name}.branches",
                value=total,
                details={"tolerance": tolerance},
            )


def evaluate_decision_tree(
    tree: Union[DecisionTree, Mapping[str, Any]],
    config: Optional[EngineConfig] = None,
) -> DecisionTreeResult:
    """
    Roll back expected values and trace the best path.

    The best path starts at the root and follows the chosen child of each
    decision node; it ends at the first chance or terminal node.

    Raises:
        MalformedTreeError: structural problems (see DecisionTree)
        InvalidInputError: chance probabilities missing, negative, or not
            summing to 1 within the configured tolerance
    """
    cfg = (config or DEFAULT_CONFIG).risk
    if not isinstance(tree, DecisionTree):
        tree = DecisionTree.from_nested(tree)
    _check_chance_probabilities(tree, cfg.probability_tolerance)

    values = [0.0] * len(tree.nodes)
    chosen: List[Optional[int]] = [None] * len(tree.nodes)

    # Reverse index order is a valid post-order for a forward-pointing arena
    for index in range(len(tree.nodes) - 1, -1, -1):
        node = tree.nodes[index]
        if node.kind is NodeKind.TERMINAL:
            values[index] = node.value
        elif node.kind is NodeKind.CHANCE:
            values[index] = sum(tree.nodes[c].probability * values[c] for c in node.children)
        else:
            best = node.children[0]
            for child in node.children[1:]:
                if values[child] > values[best]:
                    best = child
            chosen[index] = best
            values[index] = values[best]

    path = [tree.root.name]
    cursor = 0
    while chosen[cursor] is not None:
        cursor = chosen[cursor]
        path.append(tree.nodes[cursor].name)

    recommendation = tree.nodes[chosen[0]].name if chosen[0] is not None else None

    return DecisionTreeResult(
        expected_value=float(values[0]),
        best_path=tuple(path),
        recommendation=recommendation,
        nodes=tuple(
            NodeEvaluation(
                index=i,
                name=node.name,
                node_kind=node.kind.value,
                expected_value=float(values[i]),
                chosen_child=chosen[i],
            )
            for i, node in enumerate(tree.nodes)
        ),
    )
