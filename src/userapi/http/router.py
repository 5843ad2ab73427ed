"""
=============================================================================
ROUTER & ROUTE TABLE
=============================================================================

Routes are declared per resource on a Router, then compiled once at
startup into an immutable RouteTable.

    users = Router("users")

    @users.get("")
    def get_user(ctx):
        ...

    @users.post("")
    def create_user(ctx):
        ...

    table = RouteTable.build(users, tokens)
    table.lookup("users", "get")        # → get_user

=============================================================================
PATH & METHOD NORMALISATION
=============================================================================

Paths are compared with their leading and trailing slashes stripped and
methods are compared lowercase:

    "/users/"  → "users"        "GET" → "get"
    "/"        → ""             "Put" → "put"

Matching is exact. There are no path parameters; identifiers travel in
the query string or the JSON body.

=============================================================================
CONFLICTS
=============================================================================

Two registrations of the same (path, method) are a programming error.
Router.add_route raises RouteConflictError for duplicates inside one
router, RouteTable.build for duplicates across routers. The server does
not start with an ambiguous table.

=============================================================================
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

# A handler takes a RequestContext and returns (status, body)
Handler = Callable[..., Any]

SUPPORTED_METHODS = ("get", "post", "put", "delete")


class RouteConflictError(Exception):
    """The same (path, method) pair was registered twice."""

    def __init__(self, path: str, method: str):
        super().__init__(f"Route already registered: {method.upper()} /{path}")
        self.path = path
        self.method = method


def normalize_path(path: str) -> str:
    """Strip leading and trailing slashes: "/users/" → "users"."""
    return path.strip("/")


def normalize_method(method: str) -> str:
    return method.strip().lower()


@dataclass(frozen=True)
class Route:
    """A single (path, method) → handler binding."""

    path: str
    method: str
    handler: Handler

    @property
    def handler_name(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))


class Router:
    """
    Route declarations for one resource.

    Sub-paths are relative to `base_path`; "" means the base path itself.
    """

    def __init__(self, base_path: str = ""):
        self.base_path = normalize_path(base_path)
        self._routes: List[Route] = []

    def _full_path(self, sub_path: str) -> str:
        sub_path = normalize_path(sub_path)
        if not self.base_path:
            return sub_path
        if not sub_path:
            return self.base_path
        return f"{self.base_path}/{sub_path}"

    def add_route(self, path: str, handler: Handler, method: str) -> Route:
        """
        Register `handler` for `method` on `path`.

        Raises:
            RouteConflictError: This router already has (path, method).
            ValueError: The method is not one the API serves.
        """
        method = normalize_method(method)
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported method: {method!r}")

        full_path = self._full_path(path)
        for existing in self._routes:
            if existing.path == full_path and existing.method == method:
                raise RouteConflictError(full_path, method)

        route = Route(path=full_path, method=method, handler=handler)
        self._routes.append(route)
        return route

    def route(self, path: str, method: str) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(). Returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return decorator

    def get(self, path: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "get")

    def post(self, path: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "post")

    def put(self, path: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "put")

    def delete(self, path: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "delete")

    def routes(self) -> List[Route]:
        """Registered routes in declaration order."""
        return list(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes)


class RouteTable:
    """
    Immutable two-level lookup: {path: {method: handler}}.

    Build it with RouteTable.build(); the constructor expects an already
    validated route list.
    """

    def __init__(self, routes: List[Route]):
        self._routes = tuple(routes)
        table: Dict[str, Dict[str, Handler]] = {}
        for route in self._routes:
            table.setdefault(route.path, {})[route.method] = route.handler
        self._table: Mapping[str, Mapping[str, Handler]] = MappingProxyType(
            {path: MappingProxyType(methods) for path, methods in table.items()}
        )

    @classmethod
    def build(cls, *routers: Router) -> "RouteTable":
        """
        Merge the routers' declarations into one table.

        Raises:
            RouteConflictError: Two routers declare the same (path, method).
        """
        seen = set()
        routes: List[Route] = []
        for router in routers:
            for route in router.routes():
                key = (route.path, route.method)
                if key in seen:
                    raise RouteConflictError(route.path, route.method)
                seen.add(key)
                routes.append(route)
        return cls(routes)

    def lookup(self, path: str, method: str) -> Optional[Handler]:
        """Handler for (path, method), or None if nothing is registered."""
        methods = self._table.get(normalize_path(path))
        if methods is None:
            return None
        return methods.get(normalize_method(method))

    def routes(self) -> List[Route]:
        return list(self._routes)

    def describe(self) -> List[str]:
        """One line per route, e.g. "GET     /users → UsersResource.get"."""
        return [
            f"{route.method.upper():<7} /{route.path} → {route.handler_name}"
            for route in self._routes
        ]

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, key: Any) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        return self.lookup(key[0], key[1]) is not None
