from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

from fastapi.routing import APIRoute
from starlette.routing import BaseRoute

from schoolrecords.authz.errors import PolicyConfigError
from schoolrecords.authz.policy import Combinator, OperationPolicy, PolicyRequirement, ResourceSlot
from schoolrecords.authz.principal import Role

POLICY_ATTR = "__operation_policy__"


def require_role(
    *roles: Role,
    combinator: Combinator = Combinator.ANY,
    resource: ResourceSlot | None = None,
    resources: Iterable[ResourceSlot] = (),
    operation: str | None = None,
) -> Callable:
    """
    Declare an endpoint's role requirement and resource slot(s).

    Implementation detail:
    - This decorator does NOT perform authorization itself.
    - It attaches an `OperationPolicy` that is collected into the registry when
      the app is built, and enforced by the global security dependency.
    """

    slots = tuple(([resource] if resource is not None else []) + list(resources))

    def decorator(fn: Callable) -> Callable:
        policy = OperationPolicy(
            operation=operation or fn.__name__,
            requirement=PolicyRequirement(required_roles=frozenset(roles), combinator=combinator),
            resources=slots,
        )
        setattr(fn, POLICY_ATTR, policy)
        return fn

    return decorator


def operation_name(endpoint: Callable) -> str:
    policy = getattr(endpoint, POLICY_ATTR, None)
    if policy is not None:
        return policy.operation
    return endpoint.__name__


def iter_api_routes(routes: Iterable[BaseRoute]) -> Iterator[APIRoute]:
    """
    Yield every `APIRoute`, descending into containers.

    Depending on the FastAPI/Starlette version, included routers show up in
    `app.routes` either flattened or as wrapper routes; mounts expose
    `.routes`, wrappers `.router.routes` or `.app.routes`.
    """

    seen: set[int] = set()
    stack = [iter(routes)]
    while stack:
        route = next(stack[-1], None)
        if route is None:
            stack.pop()
            continue
        if id(route) in seen:
            continue
        seen.add(id(route))

        if isinstance(route, APIRoute):
            yield route
            continue

        children = getattr(route, "routes", None)
        for attr in ("router", "app"):
            if children is None:
                children = getattr(getattr(route, attr, None), "routes", None)
        if children:
            stack.append(iter(list(children)))


def collect_route_policies(routes: Iterable[BaseRoute]) -> list[OperationPolicy]:
    """
    Read decorator metadata from every API route.

    Operation names must be unique across the app, declared or not, since
    config entries and the registry key on them.
    """

    seen: set[str] = set()
    policies: list[OperationPolicy] = []
    for route in iter_api_routes(routes):
        name = operation_name(route.endpoint)
        if name in seen:
            raise PolicyConfigError(f"operation name {name!r} is used by more than one route")
        seen.add(name)

        policy = getattr(route.endpoint, POLICY_ATTR, None)
        if policy is not None:
            policies.append(policy)
    return policies


def route_operations(routes: Iterable[BaseRoute]) -> set[str]:
    return {operation_name(route.endpoint) for route in iter_api_routes(routes)}
