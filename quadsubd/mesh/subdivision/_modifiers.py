# SPDX-FileCopyrightText: Copyright (c) 2023 - 2026 NVIDIA CORPORATION & AFFILIATES.
# SPDX-FileCopyrightText: All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

r"""Sector shape modifications applied on top of the smooth subdivision rules.

Both modifications act in the characteristic map of a rule. With
``a_i = l_i . P`` evaluated over the ring points ``P``, a refined point with
characteristic coordinates ``(x1, x2)`` lies near

.. math::

    a_0 + \lambda_1 x_1 a_1 + \lambda_2 x_2 a_2 .

*Flatness* blends a point toward that tangent-plane approximation. *Normal
blending* replaces the tangents ``a_i`` with their projections onto the plane
orthogonal to a target normal and moves the point by the resulting change.
"""

import torch

from quadsubd.mesh._types import RuleKind
from quadsubd.mesh.subdivision._rules import QuadRule
from quadsubd.mesh.utilities._tolerances import normalize


def flatten_point(
    point: torch.Tensor,
    rule: QuadRule,
    points: torch.Tensor,
    x1: float,
    x2: float,
    flatness: float,
) -> torch.Tensor:
    """Blend ``point`` toward the tangent plane of the limit surface.

    Parameters
    ----------
    point : torch.Tensor
        Smooth result of the subdivision rule, shape (3,).
    rule : QuadRule
        Rule of the ring ``points`` were gathered from.
    points : torch.Tensor
        Ring points, shape (1 + n_edge + n_face, 3).
    x1, x2 : float
        Characteristic map coordinates of the refined point.
    flatness : float
        Blend factor in [0, 1]; 0 returns ``point`` unchanged.

    Returns
    -------
    torch.Tensor
        Modified point, shape (3,).
    """
    target = (
        rule.l0.apply(points)
        + rule.lambda1 * x1 * rule.l1.apply(points)
        + rule.lambda2 * x2 * rule.l2.apply(points)
    )
    return (1.0 - flatness) * point + flatness * target


def crease_direction(
    normal: torch.Tensor, other: torch.Tensor | None, tolerance: float
) -> torch.Tensor | None:
    """Unit direction of the crease line shared by two sectors.

    Returns None when there is no neighboring normal or the two normals are
    parallel within ``tolerance``.
    """
    if other is None:
        return None
    cross = torch.linalg.cross(normal, other.to(normal.dtype))
    if torch.linalg.vector_norm(cross).item() <= tolerance:
        return None
    return normalize(cross)


def _project_onto(vector: torch.Tensor, direction: torch.Tensor) -> torch.Tensor:
    return (vector @ direction) * direction


def blend_normal(
    point: torch.Tensor,
    rule: QuadRule,
    points: torch.Tensor,
    x1: float,
    x2: float,
    normal: torch.Tensor,
    blend: float,
    start_normal: torch.Tensor | None = None,
    end_normal: torch.Tensor | None = None,
    tolerance: float = 1e-3,
) -> torch.Tensor:
    """Move ``point`` so the limit tangent plane becomes orthogonal to ``normal``.

    On open rings the sectors across the two bounding edges may carry their
    own normals (``start_normal`` across the edge to ``E_0``, ``end_normal``
    across the edge to ``E_k``). The shared crease tangent must then lie in
    both planes, so it is constrained to ``normalize(normal x other)``.

    Parameters
    ----------
    point : torch.Tensor
        Point to modify, shape (3,).
    rule : QuadRule
        Rule of the ring ``points`` were gathered from.
    points : torch.Tensor
        Ring points, shape (1 + n_edge + n_face, 3).
    x1, x2 : float
        Characteristic map coordinates of the refined point.
    normal : torch.Tensor
        Unit target normal, shape (3,).
    blend : float
        Blend factor in [0, 1].
    start_normal, end_normal : torch.Tensor or None
        Target normals of the neighboring sectors.
    tolerance : float
        Minimum ``|normal x other|`` for the neighbors to constrain tangents.

    Returns
    -------
    torch.Tensor
        Modified point, shape (3,).
    """
    normal = normal.to(dtype=points.dtype, device=points.device)
    a1 = rule.l1.apply(points)
    a2 = rule.l2.apply(points)
    t1 = a1 - (a1 @ normal) * normal
    t2 = a2 - (a2 @ normal) * normal

    if rule.kind is RuleKind.CREASE:
        ### a2 runs along the crease
        other = start_normal if start_normal is not None else end_normal
        direction = crease_direction(normal, other, tolerance)
        if direction is not None:
            t2 = _project_onto(a2, direction)

    elif rule.kind.is_corner and (start_normal is not None or end_normal is not None):
        ### Constrain both bounding edge tangents, then recover t1, t2
        last = rule.n_edge - 1
        coords = torch.tensor(
            [
                [rule.x1.edge[0].item(), rule.x2.edge[0].item()],
                [rule.x1.edge[last].item(), rule.x2.edge[last].item()],
            ],
            dtype=points.dtype,
            device=points.device,
        )
        boundary = coords @ torch.stack([t1, t2])
        for row, other in enumerate((start_normal, end_normal)):
            direction = crease_direction(normal, other, tolerance)
            if direction is not None:
                boundary[row] = _project_onto(boundary[row], direction)
        t1, t2 = torch.linalg.solve(coords, boundary)

    delta = rule.lambda1 * x1 * (t1 - a1) + rule.lambda2 * x2 * (t2 - a2)
    return point + blend * delta
