"""Formula dependency tracking for Cosmic Forge.

Tracks computed field dependencies for evaluation ordering,
recalculation and circular reference detection.
"""

from collections import defaultdict, deque


class FormulaDependencyGraph:
    """
    Track computed field dependencies.

    Maintains a bidirectional graph of field dependencies:
    - dependencies: field -> set of fields that depend on this field
    - reverse: field -> set of fields this field depends on
    """

    def __init__(self):
        """Initialize empty dependency graph."""
        # Forward mapping: field -> set of dependent fields
        # If field A changes, all fields in dependencies[A] need recalculation
        self.dependencies: dict[str, set[str]] = defaultdict(set)

        # Reverse mapping: field -> set of fields it depends on
        # To calculate field A, we need all fields in reverse[A]
        self.reverse: dict[str, set[str]] = defaultdict(set)

    def add_formula_field(
        self,
        field: str,
        depends_on: set[str],
        allow_cycles: bool = False,
    ) -> tuple[bool, str | None]:
        """
        Add a computed field to the dependency graph.

        Args:
            field: Name of the computed field
            depends_on: Set of field names this formula references
            allow_cycles: Record the edges even if they close a cycle,
                so the cycle can be reported later by ``find_cycles``

        Returns:
            Tuple of (success, error_message)
        """
        if not allow_cycles and self.detect_circular_reference(field, depends_on):
            return False, "Circular reference detected in formula dependencies"

        # Remove old dependencies if field already exists
        if field in self.reverse:
            for old_dep in self.reverse[field]:
                self.dependencies[old_dep].discard(field)

        self.reverse[field] = set(depends_on)
        for dep in depends_on:
            self.dependencies[dep].add(field)

        return True, None

    def remove_formula_field(self, field: str) -> None:
        """
        Remove a computed field from the dependency graph.

        Args:
            field: Name of the computed field to remove
        """
        if field in self.reverse:
            for dep in self.reverse[field]:
                self.dependencies[dep].discard(field)
            del self.reverse[field]

        self.dependencies.pop(field, None)

    def get_affected_fields(self, changed_field: str) -> list[str]:
        """
        Get computed fields that need recalculation when a field changes.

        Uses BFS to traverse the dependency tree and find all
        transitive dependents of the changed field.

        Args:
            changed_field: Name of the field that changed

        Returns:
            List of field names that need recalculation
        """
        affected = []
        to_process = deque([changed_field])
        seen = set()

        while to_process:
            current = to_process.popleft()

            if current in seen:
                continue
            seen.add(current)

            for dependent in sorted(self.dependencies.get(current, ())):
                if dependent not in seen:
                    affected.append(dependent)
                    to_process.append(dependent)

        # A dependent reachable along two paths is listed once
        return list(dict.fromkeys(affected))

    def get_evaluation_order(self, fields: set[str]) -> list[str]:
        """
        Get evaluation order for multiple computed fields.

        Uses topological sort (Kahn's algorithm). Only edges between the
        given fields count; among fields that are ready at the same time,
        names are taken in sorted order so the result does not depend on
        insertion order.

        Args:
            fields: Set of computed field names to evaluate

        Returns:
            Ordered list of field names, or empty list if cycle detected
        """
        in_degree = {f: 0 for f in fields}

        for f in fields:
            for dep in self.reverse.get(f, ()):
                if dep in fields:
                    in_degree[f] += 1

        queue = deque(sorted(f for f in fields if in_degree[f] == 0))

        result = []
        while queue:
            f = queue.popleft()
            result.append(f)

            ready = []
            for dependent in self.dependencies.get(f, ()):
                if dependent in in_degree:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        ready.append(dependent)
            queue.extend(sorted(ready))

        if len(result) != len(fields):
            # Cycle detected
            return []

        return result

    def find_cycles(self) -> list[list[str]]:
        """
        Find every group of fields that depend on each other.

        Runs Tarjan's strongly connected components algorithm
        (iteratively) over the reverse mapping. A component is a cycle
        when it has more than one member or a member depends on itself.

        Returns:
            Sorted list of cycles, each a sorted list of field names
        """
        index_of: dict[str, int] = {}
        lowlink: dict[str, int] = {}
        on_stack: set[str] = set()
        stack: list[str] = []
        cycles: list[list[str]] = []
        counter = 0

        for root in sorted(self.reverse):
            if root in index_of:
                continue

            work = [(root, iter(sorted(self.reverse.get(root, ()))))]
            index_of[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)

            while work:
                node, successors = work[-1]
                advanced = False
                for succ in successors:
                    if succ not in index_of:
                        index_of[succ] = lowlink[succ] = counter
                        counter += 1
                        stack.append(succ)
                        on_stack.add(succ)
                        work.append((succ, iter(sorted(self.reverse.get(succ, ())))))
                        advanced = True
                        break
                    if succ in on_stack:
                        lowlink[node] = min(lowlink[node], index_of[succ])
                if advanced:
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])

                if lowlink[node] == index_of[node]:
                    component = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1 or node in self.reverse.get(node, ()):
                        cycles.append(sorted(component))

        return sorted(cycles)

    def detect_circular_reference(self, field: str, depends_on: set[str]) -> bool:
        """
        Check if adding this dependency would create a cycle.

        Uses DFS to detect cycles in the dependency graph.

        Args:
            field: Name of the computed field being added/updated
            depends_on: Set of field names this formula references

        Returns:
            True if circular reference detected
        """
        if not depends_on:
            return False

        if field in depends_on:
            return True

        visited = set()
        to_check = list(depends_on)

        while to_check:
            current = to_check.pop()

            if current == field:
                return True

            if current in visited:
                continue
            visited.add(current)

            for dep in self.reverse.get(current, set()):
                to_check.append(dep)

        return False

    def get_dependencies(self, field: str) -> set[str]:
        """
        Get direct dependencies of a field.

        Args:
            field: Name of the computed field

        Returns:
            Set of field names that this field depends on
        """
        return self.reverse.get(field, set()).copy()

    def get_dependents(self, field: str) -> set[str]:
        """
        Get direct dependents of a field.

        Args:
            field: Name of the field

        Returns:
            Set of field names that depend on this field
        """
        return self.dependencies.get(field, set()).copy()

    def clear(self) -> None:
        """Clear all dependencies from the graph."""
        self.dependencies.clear()
        self.reverse.clear()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"FormulaDependencyGraph("
            f"fields={len(self.reverse)}, "
            f"edges={sum(len(deps) for deps in self.dependencies.values())})"
        )
