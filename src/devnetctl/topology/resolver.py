# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import re
from typing import Any, List, Optional, Sequence

from devnetctl.errors import TopologyResolutionError
from .models import FleetAddress, RoleAssignment

_SEPARATORS = re.compile(r"[,\s]+")


def split_to_array(value: Optional[Any]) -> List[str]:
    """
    Turn 'a, b c' (or a YAML list) into ['a', 'b', 'c'], preserving order.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        items = _SEPARATORS.split(str(value))
    return [i.strip() for i in items if i and i.strip()]


def fleet_addresses(addresses: Sequence[str]) -> List[FleetAddress]:
    return [FleetAddress(address=a, position=i) for i, a in enumerate(addresses)]


def resolve_topology(
    addresses: Sequence[str],
    host_login_user: str,
    worker_a_users: Sequence[str],
    worker_b_users: Sequence[str],
) -> List[RoleAssignment]:
    """
    Assign a login to every fleet address.

    Position 0 is the host node and logs in as host_login_user. Any other
    position i uses worker_a_users[i] while i < len(worker_a_users), then
    worker_b_users[i - len(worker_a_users)]. Slot 0 of worker_a_users
    belongs to the host and is never used as a login.
    """
    assignments: List[RoleAssignment] = []
    n_a = len(worker_a_users)

    for fa in fleet_addresses(addresses):
        i = fa.position
        if i == 0:
            login = host_login_user
        elif i < n_a:
            login = worker_a_users[i]
        else:
            j = i - n_a
            if j >= len(worker_b_users):
                raise TopologyResolutionError(
                    f"No login configured for fleet position {i} ({fa.address}): "
                    f"{n_a} bor user(s) and {len(worker_b_users)} erigon user(s) "
                    f"cannot cover {len(addresses)} instance(s)"
                )
            login = worker_b_users[j]

        if not login:
            raise TopologyResolutionError(
                f"Empty login for fleet position {i} ({fa.address})"
            )

        assignments.append(
            RoleAssignment(
                login=login,
                address=fa.address,
                position=i,
                is_host_node=(i == 0),
            )
        )

    return assignments


def host_assignment(assignments: Sequence[RoleAssignment]) -> RoleAssignment:
    for a in assignments:
        if a.is_host_node:
            return a
    raise TopologyResolutionError("Fleet has no host node")
