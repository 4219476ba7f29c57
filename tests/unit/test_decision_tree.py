import pytest

from econ_engine.analytics.risk import DecisionTree, NodeKind, TreeNode, evaluate_decision_tree
from econ_engine.utils.exceptions import InvalidInputError, MalformedTreeError


def test_launch_tree_expected_value(launch_tree_result):
    assert launch_tree_result.expected_value == pytest.approx(40)
    assert launch_tree_result.recommendation == "Build"
    assert launch_tree_result.best_path == ("Launch?", "Build")


def test_node_evaluations_are_preorder(launch_tree_result):
    names = [n.name for n in launch_tree_result.nodes]
    assert names == ["Launch?", "Build", "Success", "Failure", "Do nothing"]
    root = launch_tree_result.nodes[0]
    assert root.node_kind == "decision"
    assert root.chosen_child == 1
    assert launch_tree_result.nodes[1].expected_value == pytest.approx(0.6 * 100 - 0.4 * 50)


def test_decision_prefers_higher_value(launch_tree_mapping):
    launch_tree_mapping["branches"][1]["value"] = 55
    result = evaluate_decision_tree(launch_tree_mapping)
    assert result.expected_value == 55
    assert result.recommendation == "Do nothing"


def test_decision_tie_keeps_first_branch():
    tree = {
        "type": "decision",
        "name": "root",
        "branches": [
            {"type": "outcome", "name": "A", "value": 10},
            {"type": "outcome", "name": "B", "value": 10},
        ],
    }
    assert evaluate_decision_tree(tree).recommendation == "A"


def test_nested_decisions_trace_best_path():
    tree = {
        "type": "decision",
        "name": "Build or buy",
        "branches": [
            {"type": "outcome", "name": "Buy", "value": 20},
            {
                "type": "decision",
                "name": "Build",
                "branches": [
                    {"type": "outcome", "name": "In-house", "value": 15},
                    {"type": "outcome", "name": "Outsource", "value": 30},
                ],
            },
        ],
    }
    result = evaluate_decision_tree(tree)
    assert result.best_path == ("Build or buy", "Build", "Outsource")
    assert result.expected_value == 30


def test_root_chance_node_has_no_recommendation():
    tree = {
        "type": "chance",
        "name": "Market",
        "branches": [
            {"type": "terminal", "name": "Up", "probability": 0.5, "value": 10},
            {"type": "terminal", "name": "Down", "probability": 0.5, "value": -2},
        ],
    }
    result = evaluate_decision_tree(tree)
    assert result.expected_value == pytest.approx(4)
    assert result.recommendation is None
    assert result.best_path == ("Market",)


def test_probabilities_within_tolerance_accepted():
    tree = {
        "type": "chance",
        "name": "c",
        "branches": [
            {"type": "outcome", "name": "x", "probability": 0.333, "value": 3},
            {"type": "outcome", "name": "y", "probability": 0.333, "value": 3},
            {"type": "outcome", "name": "z", "probability": 0.333, "value": 3},
        ],
    }
    assert evaluate_decision_tree(tree).expected_value == pytest.approx(2.997)


def test_probabilities_not_summing_to_one_rejected(launch_tree_mapping):
    launch_tree_mapping["branches"][0]["branches"][1]["probability"] = 0.3
    with pytest.raises(InvalidInputError):
        evaluate_decision_tree(launch_tree_mapping)


def test_missing_probability_rejected(launch_tree_mapping):
    del launch_tree_mapping["branches"][0]["branches"][0]["probability"]
    with pytest.raises(MalformedTreeError):
        evaluate_decision_tree(launch_tree_mapping)


def test_terminal_without_value_is_malformed(launch_tree_mapping):
    del launch_tree_mapping["branches"][1]["value"]
    with pytest.raises(MalformedTreeError):
        evaluate_decision_tree(launch_tree_mapping)


def test_decision_without_branches_is_malformed():
    with pytest.raises(MalformedTreeError):
        evaluate_decision_tree({"type": "decision", "name": "empty", "branches": []})


def test_unknown_node_type_rejected():
    with pytest.raises(InvalidInputError):
        evaluate_decision_tree({"type": "maybe", "name": "?"})


def test_shared_subtree_is_malformed():
    leaf = {"type": "outcome", "name": "leaf", "value": 1}
    tree = {"type": "decision", "name": "root", "branches": [leaf, leaf]}
    with pytest.raises(MalformedTreeError):
        evaluate_decision_tree(tree)


def test_cyclic_mapping_is_malformed():
    node = {"type": "decision", "name": "loop", "branches": []}
    node["branches"].append(node)
    with pytest.raises(MalformedTreeError):
        evaluate_decision_tree(node)


def test_terminal_with_branches_is_malformed():
    tree = {
        "type": "decision",
        "name": "root",
        "branches": [
            {
                "type": "outcome",
                "name": "leaf",
                "value": 5,
                "branches": [{"type": "outcome", "name": "below leaf", "value": 1}],
            },
        ],
    }
    with pytest.raises(MalformedTreeError) as excinfo:
        DecisionTree.from_nested(tree)
    assert excinfo.value.node == "leaf"


def test_arena_terminal_with_children_is_malformed():
    with pytest.raises(MalformedTreeError):
        DecisionTree((
            TreeNode(NodeKind.DECISION, "root", children=(1,)),
            TreeNode(NodeKind.TERMINAL, "leaf", children=(2,), value=5),
            TreeNode(NodeKind.TERMINAL, "below leaf", value=1),
        ))


def test_arena_backward_reference_is_malformed():
    with pytest.raises(MalformedTreeError):
        DecisionTree((
            TreeNode(NodeKind.DECISION, "root", children=(1,)),
            TreeNode(NodeKind.DECISION, "child", children=(0,)),
        ))


def test_arena_orphan_is_malformed():
    with pytest.raises(MalformedTreeError):
        DecisionTree((
            TreeNode(NodeKind.DECISION, "root", children=(1,)),
            TreeNode(NodeKind.TERMINAL, "kept", value=1.0),
            TreeNode(NodeKind.TERMINAL, "orphan", value=2.0),
        ))


def test_arena_built_directly():
    tree = DecisionTree((
        TreeNode("decision", "root", children=(1, 2)),
        TreeNode("terminal", "a", value=5.0),
        TreeNode("terminal", "b", value=7.0),
    ))
    result = evaluate_decision_tree(tree)
    assert result.recommendation == "b"


def test_deep_tree_does_not_hit_recursion_limit():
    depth = 5000
    node = {"type": "outcome", "name": "bottom", "value": 1.0}
    for level in range(depth):
        node = {"type": "decision", "name": f"d{level}", "branches": [node]}
    result = evaluate_decision_tree(node)
    assert result.expected_value == 1.0
    assert len(result.best_path) == depth + 1
