from collections import deque
from typing import List, Dict, Any, Optional, Iterable, Set, Tuple

CORUN = "coRun"


# --------- Co-run Rule ---------
class CoRunRule:
    def __init__(self, tasks: Iterable[str], kind: str = CORUN):
        self.kind = kind
        self.tasks = list(tasks)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["CoRunRule"]:
        """
        Accepts {"type": "coRun", "tasks": [...]} as well as rules that keep
        the group under parameters.taskGroup. Returns None for other rule types.
        """
        if not isinstance(data, dict):
            return None
        kind = data.get("type", data.get("kind"))
        if kind != CORUN:
            return None

        tasks = data.get("tasks")
        if tasks is None:
            tasks = (data.get("parameters") or {}).get("taskGroup")
        if not isinstance(tasks, list):
            return None
        return cls([str(task).strip() for task in tasks])

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "tasks": list(self.tasks)}

    def __eq__(self, other):
        if not isinstance(other, CoRunRule):
            return NotImplemented
        return self.kind == other.kind and self.tasks == other.tasks

    def __repr__(self):
        return f"CoRunRule({self.tasks!r})"


# --------- Rule graph ---------

def build_corun_graph(rules: Iterable[CoRunRule]) -> Dict[str, List[str]]:
    """
    Every task of a rule points at every other task of the same rule, so a
    rule with N tasks becomes a directed clique. Node and neighbor order
    follow first insertion.
    """
    graph: Dict[str, Dict[str, None]] = {}
    for rule in rules:
        for task in rule.tasks:
            neighbors = graph.setdefault(task, {})
            for other in rule.tasks:
                if other != task:
                    neighbors.setdefault(other, None)
    return {task: list(neighbors) for task, neighbors in graph.items()}


def count_edges(graph: Dict[str, List[str]]) -> int:
    return sum(len(neighbors) for neighbors in graph.values())


def _memberships(rules: Iterable[CoRunRule]) -> Dict[str, Set[int]]:
    groups: Dict[str, Set[int]] = {}
    for index, rule in enumerate(rules):
        for task in rule.tasks:
            groups.setdefault(task, set()).add(index)
    return groups


def _shared_run(path: List[str], runs: List[Tuple[int, Set[int]]], memberships: Dict[str, Set[int]]):
    """Start and shared rules of the longest suffix of path that sits inside one rule."""
    own = memberships.get(path[-1], set())
    if not runs:
        return 0, set(own)

    start, shared = runs[-1]
    narrowed = shared & own
    if narrowed:
        return start, narrowed

    narrowed = set(own)
    index = len(path) - 2
    while index >= start:
        step = narrowed & memberships.get(path[index], set())
        if not step:
            break
        narrowed = step
        index -= 1
    return index + 1, narrowed


_DONE = object()


def _search(graph: Dict[str, List[str]], memberships: Optional[Dict[str, Set[int]]] = None) -> List[List[str]]:
    visited: Set[str] = set()
    on_stack: Dict[str, int] = {}
    path: List[str] = []
    runs: List[Tuple[int, Set[int]]] = []
    frames = []
    cycles: List[List[str]] = []

    def enter(node: str):
        visited.add(node)
        on_stack[node] = len(path)
        path.append(node)
        if memberships is not None:
            runs.append(_shared_run(path, runs, memberships))
        frames.append((node, iter(graph.get(node, []))))

    for root in graph:
        if root in visited:
            continue
        enter(root)

        while frames:
            node, neighbors = frames[-1]
            neighbor = next(neighbors, _DONE)
            if neighbor is _DONE:
                frames.pop()
                path.pop()
                del on_stack[node]
                if memberships is not None:
                    runs.pop()
                continue

            if neighbor in on_stack:
                start = on_stack[neighbor]
                # A loop that stays inside one rule's group is that rule's own clique
                if memberships is None or start < runs[-1][0]:
                    cycles.append(path[start:])
            elif neighbor not in visited:
                enter(neighbor)

    return cycles


# --------- Circular co-run detection ---------

def detect_circular_corun(rules: Iterable[CoRunRule]) -> List[List[str]]:
    """
    Depth-first search over the co-run graph. A neighbor that is still on the
    search path closes a cycle, reported as the path slice starting at that
    neighbor (the closing edge is implied). Fully processed nodes are never
    re-entered, so a node shared by several cycles only reports the first one
    reached. The walk keeps its own frame stack, so long chains do not hit
    the interpreter recursion limit.
    """
    return _search(build_corun_graph(rules))


def cross_rule_cycles(rules: Iterable[CoRunRule]) -> List[List[str]]:
    """
    Same walk as detect_circular_corun, minus the cycles that sit entirely
    inside one rule's own task group. Those are skipped before they are
    copied out, so a rule with thousands of tasks stays cheap to check.
    """
    rules = list(rules)
    return _search(build_corun_graph(rules), _memberships(rules))


# --------- Rule gating ---------

def _linking_path(graph: Dict[str, List[str]], source: str, target: str) -> List[str]:
    parents: Dict[str, Optional[str]] = {source: None}
    queue = deque([source])
    while queue:
        node = queue.popleft()
        if node == target:
            break
        for neighbor in graph.get(node, []):
            if neighbor not in parents:
                parents[neighbor] = node
                queue.append(neighbor)

    path = [target]
    while parents[path[-1]] is not None:
        path.append(parents[path[-1]])
    return path[::-1]


def _canonical(cycle: List[str], order: Dict[str, int]) -> List[str]:
    """Starts the loop at its earliest task and walks toward the earlier of its two neighbors."""
    first = min(range(len(cycle)), key=lambda i: order[cycle[i]])
    rotated = cycle[first:] + cycle[:first]
    if len(rotated) > 2 and order[rotated[-1]] < order[rotated[1]]:
        rotated = rotated[:1] + rotated[:0:-1]
    return rotated


def check_new_rule(rules: List[CoRunRule], rule: CoRunRule) -> List[List[str]]:
    """
    Loops the candidate rule would close. Two of its tasks that the accepted
    rules already link (directly or through a chain) form a loop together
    with the candidate's own edge; each such loop is reported once, as the
    linking path. An empty result means the rule is safe to add.
    """
    parent: Dict[str, str] = {}

    def find(task: str) -> str:
        parent.setdefault(task, task)
        while parent[task] != task:
            parent[task] = parent[parent[task]]
            task = parent[task]
        return task

    for existing in rules:
        if not existing.tasks:
            continue
        head = find(existing.tasks[0])
        for task in existing.tasks[1:]:
            parent[find(task)] = head

    anchors: Dict[str, str] = {}
    links = []
    for task in dict.fromkeys(rule.tasks):
        root = find(task)
        if root in anchors:
            links.append((anchors[root], task))
        else:
            anchors[root] = task

    if not links:
        return []

    accepted = build_corun_graph(rules)
    order = {task: index for index, task in enumerate(build_corun_graph(list(rules) + [rule]))}
    return [_canonical(_linking_path(accepted, source, target), order) for source, target in links]
