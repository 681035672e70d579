"""
Rule-reference graph over a form's questions.

An edge ``A -> B`` means question A's visibility depends on the answer
to question B. Used at save time to reject cyclic configurations and
at response time to find the questions affected by an answer change.
"""

from typing import Iterable


# DFS colours
_WHITE, _GREY, _BLACK = 0, 1, 2


def build_dependency_graph(questions: Iterable) -> dict[str, list[str]]:
    """Map each question id to the ids its enabled rules reference.

    Args:
        questions: Question models (anything with `id` and `conditional_rules`).

    Returns:
        Adjacency lists in rule order, without duplicates.
    """
    graph: dict[str, list[str]] = {}
    for question in questions:
        targets: list[str] = []
        for rule in question.conditional_rules:
            if rule.question_id not in targets:
                targets.append(rule.question_id)
        graph[question.id] = targets
    return graph


def find_cycle(graph: dict[str, list[str]]) -> list[str] | None:
    """Return one cycle as a closed path (first id repeated last), or None.

    Iterative three-colour depth-first search, so deep chains cannot hit
    the recursion limit. References to ids outside the graph are ignored.
    """
    colour = {node: _WHITE for node in graph}

    for root in graph:
        if colour[root] != _WHITE:
            continue

        path: list[str] = [root]
        stack = [iter(graph[root])]
        colour[root] = _GREY

        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                colour[path.pop()] = _BLACK
                continue
            if child not in colour:
                continue
            if colour[child] == _GREY:
                start = path.index(child)
                return path[start:] + [child]
            if colour[child] == _WHITE:
                colour[child] = _GREY
                path.append(child)
                stack.append(iter(graph[child]))

    return None


def dependents_of(graph: dict[str, list[str]], question_id: str) -> list[str]:
    """All questions whose visibility depends, directly or transitively, on `question_id`."""
    reverse: dict[str, list[str]] = {}
    for source, targets in graph.items():
        for target in targets:
            reverse.setdefault(target, []).append(source)

    seen: list[str] = []
    pending = list(reverse.get(question_id, []))
    while pending:
        current = pending.pop(0)
        if current in seen or current == question_id:
            continue
        seen.append(current)
        pending.extend(reverse.get(current, []))
    return seen
