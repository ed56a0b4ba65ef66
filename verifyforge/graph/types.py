class GraphError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class CycleError(GraphError):
    def __init__(self, cycle: list[str]):
        super().__init__("Circular reporting dependency detected: " + " -> ".join(cycle))
        self.cycle = cycle


class UnresolvedDependencyError(GraphError):
    def __init__(self, path: str, identifier: str):
        super().__init__(f"Task '{path}' has unknown reporting dependency '{identifier}'")
        self.path = path
        self.identifier = identifier


class DependencyOrderError(GraphError):
    """A reporting dependency that can never settle before its dependent finishes."""

    def __init__(self, path: str, dependency: str, reason: str):
        super().__init__(f"Task '{path}' can't depend on '{dependency}': {reason}")
        self.path = path
        self.dependency = dependency


class DuplicateResultError(RuntimeError):
    def __init__(self, path: str):
        super().__init__(f"Result for '{path}' was already recorded")
        self.path = path
