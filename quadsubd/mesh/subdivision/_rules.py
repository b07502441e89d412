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

r"""Coefficient rules of the piecewise-smooth Catmull-Clark scheme.

A rule holds, for one vertex ring shape, the masks that produce the refined
vertex point (``sub``) and edge points (``edge_sub``, ``crease_sub``), plus
the eigenstructure of the local subdivision matrix used to blend results
toward a flattened shape or a prescribed normal:

- ``l0`` evaluates the limit position,
- ``l1``, ``l2`` are the left eigenvectors of the subdominant eigenvalues
  ``lambda1``, ``lambda2`` and evaluate the two limit tangents,
- ``x1``, ``x2`` are the matching right eigenvectors, i.e. the characteristic
  map coordinates of every ring point.

Every table is laid out over the ring as ``[pivot, E_0 .., D_0 ..]`` (see
:mod:`quadsubd.mesh.neighbors._ring`). Interior rings are closed and have
``k`` edge points; all other rules act on open rings with ``k + 1``.

The 6-entry edge masks are ordered
``[pivot, a, b, other_end, c, d]`` where ``a, b`` and ``c, d`` are the two
remaining points of the faces on either side of the edge.
"""

import math

import torch
from tensordict import tensorclass

from quadsubd.mesh._types import RuleKind, SectorTag, VertexTag, validate_theta
from quadsubd.mesh.utilities._errors import ConfigurationError, RuleLookupError

REGULAR_EDGE_SUB = (3 / 8, 1 / 16, 1 / 16, 3 / 8, 1 / 16, 1 / 16)
CREASE_SUB = (1 / 2, 0.0, 0.0, 1 / 2, 0.0, 0.0)


@tensorclass
class QuadCoefficients:
    """Weights of a ring mask: one for the pivot, one per edge and face point.

    Attributes:
        center: Scalar weight of the pivot, shape ().
        edge: Weights of ``E_0 ..``, shape (n_edge,).
        face: Weights of ``D_0 ..``, shape (n_face,).
    """

    center: torch.Tensor
    edge: torch.Tensor
    face: torch.Tensor

    def as_vector(self) -> torch.Tensor:
        """Concatenate as ``[center, edge.., face..]``."""
        return torch.cat([self.center.reshape(1), self.edge, self.face])

    def total(self) -> float:
        return self.as_vector().sum().item()

    def apply(self, points: torch.Tensor) -> torch.Tensor:
        """Weighted sum over ring points of shape (1 + n_edge + n_face, 3)."""
        weights = self.as_vector().to(dtype=points.dtype, device=points.device)
        return weights @ points


def _coefficients(
    n_edge: int,
    n_face: int,
    center: float = 0.0,
    edge: torch.Tensor | None = None,
    face: torch.Tensor | None = None,
) -> QuadCoefficients:
    return QuadCoefficients(
        center=torch.tensor(center, dtype=torch.float64),
        edge=torch.zeros(n_edge, dtype=torch.float64) if edge is None else edge,
        face=torch.zeros(n_face, dtype=torch.float64) if face is None else face,
    )


def _sparse(size: int, entries: dict[int, float]) -> torch.Tensor:
    values = torch.zeros(size, dtype=torch.float64)
    for index, value in entries.items():
        values[index] = value
    return values


def _angles(count: int, step: float) -> torch.Tensor:
    return torch.arange(count, dtype=torch.float64) * step


def _crease_like_edge_sub(theta_k: float) -> torch.Tensor:
    """Edge mask for an untagged edge leaving a vertex on a crease or corner."""
    gamma = 3 / 8 - math.cos(theta_k) / 4
    return torch.tensor(
        [3 / 4 - gamma, 1 / 16, 1 / 16, gamma, 1 / 16, 1 / 16], dtype=torch.float64
    )


class QuadRule:
    """Base class of the four rule variants.

    Subclasses set :attr:`kind` and implement :meth:`_build`, which fills
    every table from ``valence`` and ``theta``.

    Parameters
    ----------
    valence : int
        Number of ring faces ``k``.
    theta : float or None
        Opening angle of the sector. Only corner rules use it.
    """

    kind: RuleKind

    def __init__(self, valence: int, theta: float | None = None):
        if valence < 1:
            raise ConfigurationError(f"Rules need at least one ring face, got {valence=}")
        self.valence = valence
        self.theta = theta
        self.edge_sub = torch.tensor(REGULAR_EDGE_SUB, dtype=torch.float64)
        self.crease_sub = torch.tensor(CREASE_SUB, dtype=torch.float64)
        self.lambda1 = 0.0
        self.lambda2 = 0.0
        self._build()

    @property
    def n_edge(self) -> int:
        return self.valence if self.kind is RuleKind.INTERIOR else self.valence + 1

    @property
    def n_face(self) -> int:
        return self.valence

    def _zeros(self) -> QuadCoefficients:
        return _coefficients(self.n_edge, self.n_face)

    def _build(self) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        theta = "" if self.theta is None else f", theta={self.theta:.6g}"
        return f"{type(self).__name__}(valence={self.valence}{theta})"


class InteriorQuadRule(QuadRule):
    """Smooth vertex with a closed ring of ``k`` faces.

    Rings with ``k < 3`` have no well-defined tangent plane; their
    eigenvalues and tangent tables are zero, which turns flatness and normal
    blending into no-ops at such vertices.
    """

    kind = RuleKind.INTERIOR

    def _build(self) -> None:
        k = self.valence
        theta = 2.0 * math.pi / k

        ### Catmull-Clark vertex mask
        beta = 3.0 / (2.0 * k)
        gamma = 1.0 / (4.0 * k)
        self.sub = _coefficients(
            k,
            k,
            center=1.0 - beta - gamma,
            edge=torch.full((k,), beta / k, dtype=torch.float64),
            face=torch.full((k,), gamma / k, dtype=torch.float64),
        )

        ### Limit position
        self.l0 = _coefficients(
            k,
            k,
            center=k / (k + 5.0),
            edge=torch.full((k,), 4.0 / (k * (k + 5.0)), dtype=torch.float64),
            face=torch.full((k,), 1.0 / (k * (k + 5.0)), dtype=torch.float64),
        )

        if k < 3:
            self.l1 = self.l2 = self.x1 = self.x2 = self._zeros()
            return

        ### Subdominant eigenvalue
        a_n = 1.0 + math.cos(theta) + math.cos(math.pi / k) * math.sqrt(
            2.0 * (9.0 + math.cos(theta))
        )
        self.lambda1 = self.lambda2 = (a_n + 4.0) / 16.0

        ### Eigenvectors
        f1 = 1.0 / (4.0 * self.lambda1 - 1.0)
        angles = _angles(k, theta)
        sin_i, cos_i = torch.sin(angles), torch.cos(angles)
        sin_next, cos_next = torch.sin(angles + theta), torch.cos(angles + theta)

        self.l1 = _coefficients(k, k, edge=4.0 * sin_i, face=f1 * (sin_i + sin_next))
        self.l2 = _coefficients(k, k, edge=4.0 * cos_i, face=f1 * (cos_i + cos_next))

        normaliser = 1.0 / (k * (2.0 + (math.cos(theta) + 1.0) * f1 * f1))
        self.x1 = _coefficients(
            k, k, edge=sin_i * normaliser, face=f1 * normaliser * (sin_i + sin_next)
        )
        self.x2 = _coefficients(
            k, k, edge=cos_i * normaliser, face=f1 * normaliser * (cos_i + cos_next)
        )


class CreaseQuadRule(QuadRule):
    """Vertex on a crease (or boundary) with an open ring of ``k`` faces.

    ``E_0`` and ``E_k`` are the two crease neighbors. ``k == 1`` uses
    closed-form constants because the general expressions divide by
    ``sin(pi / k)``.
    """

    kind = RuleKind.CREASE

    def _build(self) -> None:
        k = self.valence
        n_edge = k + 1
        theta_k = math.pi / k

        self.edge_sub = _crease_like_edge_sub(theta_k)
        self.sub = _coefficients(n_edge, k, center=3 / 4, edge=_sparse(n_edge, {0: 1 / 8, k: 1 / 8}))
        self.l0 = _coefficients(n_edge, k, center=2 / 3, edge=_sparse(n_edge, {0: 1 / 6, k: 1 / 6}))
        self.lambda1 = 1 / 4 if k == 1 else 1 / 2
        self.lambda2 = 1 / 2

        if k == 1:
            self.l1 = _coefficients(2, 1, center=6.0, edge=_sparse(2, {0: -3.0, 1: -3.0}))
            self.l2 = _coefficients(2, 1, edge=_sparse(2, {0: -1.0, 1: 1.0}))
            self.x1 = _coefficients(
                2,
                1,
                center=1 / 18,
                edge=_sparse(2, {0: -2 / 18, 1: -2 / 18}),
                face=_sparse(1, {0: -5 / 18}),
            )
            self.x2 = _coefficients(2, 1, edge=_sparse(2, {0: -0.5, 1: 0.5}))
            return

        ### Tangent across the crease
        c = math.cos(theta_k)
        denom = (3.0 + c) * k
        r = (c + 1.0) / (math.sin(theta_k) * denom)
        edge_angles = _angles(n_edge, theta_k)
        face_angles = _angles(k, theta_k)

        l1_edge = 4.0 * torch.sin(edge_angles) / denom
        l1_edge[0] = l1_edge[k] = -r * (1.0 + 2.0 * c)
        self.l1 = _coefficients(
            n_edge,
            k,
            center=4.0 * r * (c - 1.0),
            edge=l1_edge,
            face=(torch.sin(face_angles) + torch.sin(face_angles + theta_k)) / denom,
        )

        ### Tangent along the crease
        self.l2 = _coefficients(n_edge, k, edge=_sparse(n_edge, {0: 0.5, k: -0.5}))

        x1_edge = torch.sin(edge_angles)
        x2_edge = torch.cos(edge_angles)
        self.x1 = _coefficients(n_edge, k, edge=x1_edge, face=x1_edge[:-1] + x1_edge[1:])
        self.x2 = _coefficients(n_edge, k, edge=x2_edge, face=x2_edge[:-1] + x2_edge[1:])


class ConvexCornerQuadRule(QuadRule):
    """Corner vertex whose sector spans an opening angle ``0 < theta < pi``.

    The corner interpolates its control point. The two tangents are the
    directions of the bounding crease edges, ``a1 = E_0 - c`` and
    ``a2 = E_k - c``, and the characteristic map spreads the ring evenly over
    the opening angle.
    """

    kind = RuleKind.CONVEX_CORNER

    def _build(self) -> None:
        validate_theta(self.kind, self.theta)
        k = self.valence
        n_edge = k + 1
        theta_k = self.theta / k

        self.sub = _coefficients(n_edge, k, center=1.0)
        self.l0 = _coefficients(n_edge, k, center=1.0)
        self.lambda1 = self.lambda2 = 1 / 2
        self.l1 = _coefficients(n_edge, k, center=-1.0, edge=_sparse(n_edge, {0: 1.0}))
        self.l2 = _coefficients(n_edge, k, center=-1.0, edge=_sparse(n_edge, {k: 1.0}))

        if k == 1:
            self.x1 = _coefficients(2, 1, edge=_sparse(2, {0: 1.0}), face=_sparse(1, {0: 1.0}))
            self.x2 = _coefficients(2, 1, edge=_sparse(2, {1: 1.0}), face=_sparse(1, {0: 1.0}))
            return

        self.edge_sub = _crease_like_edge_sub(theta_k)
        angles = _angles(n_edge, theta_k)
        sin_theta = math.sin(self.theta)
        x1_edge = torch.sin(self.theta - angles) / sin_theta
        x2_edge = torch.sin(angles) / sin_theta
        self.x1 = _coefficients(n_edge, k, edge=x1_edge, face=x1_edge[:-1] + x1_edge[1:])
        self.x2 = _coefficients(n_edge, k, edge=x2_edge, face=x2_edge[:-1] + x2_edge[1:])


class ConcaveCornerQuadRule(QuadRule):
    """Corner vertex whose sector spans an opening angle ``pi < theta < 2 pi``.

    The tangent frame is aligned with the bisector of the sector: ``a1``
    points along the bisector and ``a2`` across it, since the two bounding
    edges alone no longer span the sector.
    """

    kind = RuleKind.CONCAVE_CORNER

    def _build(self) -> None:
        validate_theta(self.kind, self.theta)
        k = self.valence
        n_edge = k + 1
        half = self.theta / 2.0
        cos_half, sin_half = math.cos(half), math.sin(half)

        self.sub = _coefficients(n_edge, k, center=1.0)
        self.l0 = _coefficients(n_edge, k, center=1.0)
        self.lambda1 = self.lambda2 = 1 / 2
        self.l1 = _coefficients(
            n_edge,
            k,
            center=-1.0 / cos_half,
            edge=_sparse(n_edge, {0: 0.5 / cos_half, k: 0.5 / cos_half}),
        )
        self.l2 = _coefficients(
            n_edge, k, edge=_sparse(n_edge, {0: -0.5 / sin_half, k: 0.5 / sin_half})
        )

        if k == 1:
            self.x1 = _coefficients(
                2, 1, edge=_sparse(2, {0: cos_half, 1: cos_half}), face=_sparse(1, {0: 2.0 * cos_half})
            )
            self.x2 = _coefficients(2, 1, edge=_sparse(2, {0: -sin_half, 1: sin_half}))
            return

        theta_k = self.theta / k
        self.edge_sub = _crease_like_edge_sub(theta_k)
        angles = _angles(n_edge, theta_k) - half
        x1_edge = torch.cos(angles)
        x2_edge = torch.sin(angles)
        self.x1 = _coefficients(n_edge, k, edge=x1_edge, face=x1_edge[:-1] + x1_edge[1:])
        self.x2 = _coefficients(n_edge, k, edge=x2_edge, face=x2_edge[:-1] + x2_edge[1:])


RULE_CLASSES: dict[RuleKind, type[QuadRule]] = {
    RuleKind.INTERIOR: InteriorQuadRule,
    RuleKind.CREASE: CreaseQuadRule,
    RuleKind.CONVEX_CORNER: ConvexCornerQuadRule,
    RuleKind.CONCAVE_CORNER: ConcaveCornerQuadRule,
}

_RULE_TABLE: dict[tuple[VertexTag, SectorTag], RuleKind] = {
    (VertexTag.SMOOTH, SectorTag.UNTAGGED): RuleKind.INTERIOR,
    (VertexTag.CREASE, SectorTag.UNTAGGED): RuleKind.CREASE,
    (VertexTag.CORNER, SectorTag.CONVEX): RuleKind.CONVEX_CORNER,
    (VertexTag.CORNER, SectorTag.CONCAVE): RuleKind.CONCAVE_CORNER,
}


def select_rule_kind(vertex_tag: VertexTag, sector_tag: SectorTag) -> RuleKind:
    """Map a (vertex tag, sector tag) pair to its rule variant.

    Raises
    ------
    RuleLookupError
        For combinations without a rule, e.g. an untagged sector declared
        at a corner or a convex sector at a smooth vertex.
    """
    try:
        return _RULE_TABLE[(VertexTag(vertex_tag), SectorTag(sector_tag))]
    except KeyError:
        raise RuleLookupError(
            f"No subdivision rule for vertex tag {VertexTag(vertex_tag).name} with "
            f"sector tag {SectorTag(sector_tag).name}; corners need CONVEX or "
            f"CONCAVE sectors and other vertices need UNTAGGED ones"
        ) from None
