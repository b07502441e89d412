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

r"""Piecewise-smooth Catmull-Clark subdivision.

Each level splits every face into quads (see :mod:`._topology`) and computes
three kinds of points from the positions at the previous depth:

- **face points** at face centers, the centroid of the face,
- **vertex points** for existing vertices,
- **edge points** at edge midpoints.

Ordinary vertices (smooth, valence 4, no sector) and edges between them use
the uniform Catmull-Clark masks. Everything touching a special vertex is
computed over that vertex's ring with a coefficient rule selected from its
tag and sector, then optionally blended toward the sector's flat shape or
target normal. Positions are stored on the vertices as the next depth.

Examples
--------
>>> from quadsubd.mesh.control_mesh import build_control_mesh
>>> mesh = build_control_mesh(
...     [0.0, 0, 0, 1, 0, 0, 1, 1, 0, 0, 1, 0], [0, 1, 2, 3], [4]
... )
>>> CatmullClarkSubdivider(mesh).subdivide(2)
SubdivisionMesh(depth=2, n_vertices=25, faces_per_depth=[1, 4, 16], dtype=torch.float32)
"""

import logging
import threading
from typing import TYPE_CHECKING

import torch

from quadsubd.mesh.config import resolve_config
from quadsubd.mesh._model import Face, Vertex
from quadsubd.mesh._types import RuleKind, Sector, SectorTag, VertexTag
from quadsubd.mesh.neighbors._ring import (
    Ring,
    build_ring,
    build_sector_ring,
    diagonal_point,
    face_centroid,
    ring_points,
)
from quadsubd.mesh.subdivision._modifiers import blend_normal, flatten_point
from quadsubd.mesh.subdivision._rule_cache import RuleCache
from quadsubd.mesh.subdivision._rules import QuadRule, select_rule_kind
from quadsubd.mesh.subdivision._topology import generate_child_faces
from quadsubd.mesh.utilities._errors import ConfigurationError, TopologyError

if TYPE_CHECKING:
    from quadsubd.mesh.control_mesh import SubdivisionMesh

logger = logging.getLogger(__name__)


class CatmullClarkSubdivider:
    """Driver refining a :class:`SubdivisionMesh` in place.

    The driver owns the coefficient-rule cache. All scratch values are local
    to each call; an internal lock still rejects concurrent or reentrant
    :meth:`subdivide` calls since they would mutate the same mesh.

    Parameters
    ----------
    mesh : SubdivisionMesh
        Mesh to refine.
    config : dict or None
        Overrides of :data:`~quadsubd.mesh.config.DEFAULT_SUBDIVISION_CONFIG`.
    """

    def __init__(self, mesh: "SubdivisionMesh", config: dict | None = None):
        self.mesh = mesh
        self.config = resolve_config(config)
        self.rules = RuleCache()
        self._levels: int | None = None
        self._has_sectors = False
        self._lock = threading.Lock()

    ### Entry point

    def subdivide(self, levels: int) -> "SubdivisionMesh":
        """Refine the mesh until it reaches depth ``levels``.

        Depths that already exist are kept; a request at or below the current
        depth returns immediately. If a level fails, everything that level
        created is discarded and the mesh stays at the last completed depth.

        Parameters
        ----------
        levels : int
            Target depth.

        Returns
        -------
        SubdivisionMesh
            The refined mesh (the same object).

        Raises
        ------
        ConfigurationError
            If ``levels`` is negative.
        TopologyError
            If a vertex ring cannot be traversed.
        RuntimeError
            If another :meth:`subdivide` call on this driver is running.
        """
        if levels < 0:
            raise ConfigurationError(f"levels must be non-negative, got {levels=}")
        if not self._lock.acquire(blocking=False):
            raise RuntimeError("CatmullClarkSubdivider.subdivide is already running")
        try:
            if levels != self._levels:
                logger.debug("Level count changed to %d, resetting rule cache", levels)
                self.rules.reset()
                self._levels = levels

            mesh = self.mesh
            self._has_sectors = any(mesh.faces[f].sectors for f in mesh.levels[0])
            if mesh.depth == 0:
                self._mark_special_control_vertices()

            start = mesh.depth
            for depth in range(start, levels):
                self._refine(depth)

            if self.config.evaluate_limit and start < mesh.depth:
                from quadsubd.mesh.subdivision.limit import evaluate_limit

                evaluate_limit(mesh, subdivider=self)

            logger.info(
                "Subdivided from depth %d to %d (%d faces, %d rules cached)",
                start,
                mesh.depth,
                len(mesh.levels[-1]),
                len(self.rules),
            )
            return mesh
        finally:
            self._lock.release()

    def _mark_special_control_vertices(self) -> None:
        mesh = self.mesh
        for vertex_index, corners in mesh.incidence.items():
            vertex = mesh.vertices[vertex_index]
            has_sector = any(c in mesh.faces[f].sectors for f, c in corners)
            if vertex.tag != VertexTag.SMOOTH or has_sector:
                vertex.special = True
                continue
            face, corner = corners[0]
            ring = build_ring(mesh.faces, face, corner, self.config.max_ring_size)
            vertex.special = ring.valence != 4 or not ring.closed

    def _refine(self, depth: int) -> None:
        mesh = self.mesh
        n_faces, n_vertices = len(mesh.faces), len(mesh.vertices)
        try:
            children = generate_child_faces(mesh, depth)
            for face_index in mesh.levels[depth]:
                face = mesh.faces[face_index]
                self._face_point(face, depth)
                for corner in range(face.n_vertices):
                    self._vertex_point(face, corner, depth)
                for edge in range(face.n_vertices):
                    self._edge_point(face, edge, depth)
            for vertex_index in mesh.isolated_vertices:
                vertex = mesh.vertices[vertex_index]
                vertex.set_position(depth + 1, vertex.position(depth))
        except Exception:
            mesh.truncate(depth, n_faces, n_vertices)
            raise
        mesh.levels.append(children)
        logger.debug(
            "Depth %d: %d faces, %d vertices",
            depth + 1,
            len(children),
            len(mesh.vertices),
        )

    ### Ring and rule selection

    def ring(self, face: int, corner: int) -> Ring:
        """Ring of ``faces[face].vertices[corner]``, limited to one sector for tagged pivots."""
        faces = self.mesh.faces
        vertex = self.mesh.vertices[faces[face].vertices[corner]]
        if vertex.tag == VertexTag.SMOOTH:
            return build_ring(faces, face, corner, self.config.max_ring_size)
        return build_sector_ring(faces, face, corner, self.config.max_ring_size)

    def ring_sector(self, ring: Ring) -> Sector | None:
        """Sector governing a ring, the first declared one from its start face on."""
        faces = self.mesh.faces
        m = ring.valence
        for offset in range(m):
            position = (ring.start_edge + offset) % m
            sector = faces[ring.faces[position]].sectors.get(ring.corners[position])
            if sector is not None:
                return sector
        return None

    def rule(self, vertex: Vertex, ring: Ring, sector: Sector | None) -> QuadRule:
        if sector is not None:
            sector_tag = sector.tag
        elif vertex.tag == VertexTag.CORNER:
            sector_tag = SectorTag.CONVEX
        else:
            sector_tag = SectorTag.UNTAGGED

        kind = select_rule_kind(vertex.tag, sector_tag)
        if kind is RuleKind.INTERIOR and not ring.closed:
            raise TopologyError(
                f"Smooth vertex {vertex.index} has an open ring; the mesh is not "
                f"manifold around it"
            )
        theta = None
        if kind.is_corner:
            theta = sector.theta if sector is not None else self.config.default_corner_theta
        return self.rules.get(kind, ring.valence, theta)

    def _neighbor_normals(self, ring: Ring) -> tuple[torch.Tensor | None, torch.Tensor | None]:
        """Target normals of the sectors across the two ends of an open ring."""
        if ring.closed:
            return None, None
        faces = self.mesh.faces

        def _normal(face: int, corner: int) -> torch.Tensor | None:
            sector = self.ring_sector(self.ring(face, corner))
            return None if sector is None else sector.normal

        first = faces[ring.faces[0]]
        edge = ring.corners[0]
        start = None
        if first.neighbors[edge] is not None:
            neighbor = faces[first.neighbors[edge]]
            start = _normal(neighbor.index, neighbor.next_corner(first.neighbor_edges[edge]))

        last = faces[ring.faces[-1]]
        edge = last.prev_corner(ring.corners[-1])
        end = None
        if last.neighbors[edge] is not None:
            end = _normal(last.neighbors[edge], last.neighbor_edges[edge])

        return start, end

    def _modify(
        self,
        point: torch.Tensor,
        rule: QuadRule,
        ring: Ring,
        points: torch.Tensor,
        sector: Sector,
        x1: float,
        x2: float,
    ) -> torch.Tensor:
        if sector.modifies_flatness:
            point = flatten_point(point, rule, points, x1, x2, sector.flatness)
        if sector.modifies_normal:
            start, end = self._neighbor_normals(ring)
            point = blend_normal(
                point,
                rule,
                points,
                x1,
                x2,
                sector.normal,
                sector.normal_blend,
                start_normal=start,
                end_normal=end,
                tolerance=self.config.crease_normal_tolerance,
            )
        return point

    def _special_context(
        self, face: Face, corner: int, depth: int
    ) -> tuple[Ring, Sector | None, QuadRule, torch.Tensor]:
        mesh = self.mesh
        ring = self.ring(face.index, corner)
        sector = self.ring_sector(ring)
        rule = self.rule(mesh.vertices[face.vertices[corner]], ring, sector)
        return ring, sector, rule, ring_points(ring, mesh.faces, mesh.vertices, depth)

    ### Points

    def _face_point(self, face: Face, depth: int) -> torch.Tensor:
        mesh = self.mesh
        center = mesh.vertices[face.center_vertex]
        if center.has_position(depth + 1):
            return center.position(depth + 1)

        point = face_centroid(face, mesh.vertices, depth)
        corrected = []
        for corner in range(face.n_vertices):
            if not self._has_sectors or not mesh.vertices[face.vertices[corner]].special:
                continue
            ring, sector, rule, points = self._special_context(face, corner, depth)
            if sector is None or not sector.is_relevant:
                continue
            position = ring.start_edge
            corrected.append(
                self._modify(
                    point,
                    rule,
                    ring,
                    points,
                    sector,
                    rule.x1.face[position].item(),
                    rule.x2.face[position].item(),
                )
            )
        if corrected:
            point = torch.stack(corrected).mean(dim=0)

        center.set_position(depth + 1, point)
        return point

    def _vertex_point(self, face: Face, corner: int, depth: int) -> None:
        mesh = self.mesh
        vertex = mesh.vertices[face.vertices[corner]]
        if vertex.has_position(depth + 1):
            return

        if not vertex.special:
            ### Uniform Catmull-Clark mask
            ring = build_ring(mesh.faces, face.index, corner, self.config.max_ring_size)
            if not ring.closed:
                raise TopologyError(f"Ordinary vertex {vertex.index} has an open ring")
            points = ring_points(ring, mesh.faces, mesh.vertices, depth)
            k = ring.valence
            beta = 3.0 / (2.0 * k)
            gamma = 1.0 / (4.0 * k)
            point = (
                (1.0 - beta - gamma) * points[0]
                + beta * points[1 : k + 1].mean(dim=0)
                + gamma * points[k + 1 :].mean(dim=0)
            )
        else:
            ring, sector, rule, points = self._special_context(face, corner, depth)
            point = rule.sub.apply(points)
            if sector is not None and sector.is_relevant:
                point = self._modify(
                    point,
                    rule,
                    ring,
                    points,
                    sector,
                    rule.x1.center.item(),
                    rule.x2.center.item(),
                )

        vertex.set_position(depth + 1, point)

    def _face_side(
        self, face: Face, pivot_corner: int, other_corner: int, depth: int
    ) -> list[torch.Tensor]:
        """The two points of ``face`` besides the edge ``(pivot, other)``."""
        vertices = self.mesh.vertices
        if other_corner == face.next_corner(pivot_corner):
            adjacent = face.prev_corner(pivot_corner)
        else:
            adjacent = face.next_corner(pivot_corner)
        return [
            vertices[face.vertices[adjacent]].position(depth),
            diagonal_point(face, pivot_corner, vertices, depth),
        ]

    def _edge_stencil(self, face: Face, edge: int, pivot_is_tail: bool, depth: int) -> torch.Tensor:
        """Six points ``[pivot, a, b, other, c, d]`` around edge ``edge`` of ``face``."""
        mesh = self.mesh
        tail, head = edge, face.next_corner(edge)
        pivot, other = (tail, head) if pivot_is_tail else (head, tail)
        pivot_point = mesh.vertices[face.vertices[pivot]].position(depth)
        other_point = mesh.vertices[face.vertices[other]].position(depth)

        near = self._face_side(face, pivot, other, depth)
        neighbor_index = face.neighbors[edge]
        if neighbor_index is None:
            far = [torch.zeros_like(pivot_point), torch.zeros_like(pivot_point)]
        else:
            neighbor = mesh.faces[neighbor_index]
            shared = face.neighbor_edges[edge]
            # The neighbor traverses the edge as (head, tail)
            n_tail, n_head = neighbor.next_corner(shared), shared
            n_pivot, n_other = (n_tail, n_head) if pivot_is_tail else (n_head, n_tail)
            far = self._face_side(neighbor, n_pivot, n_other, depth)

        return torch.stack([pivot_point, *near, other_point, *far])

    def _edge_point(self, face: Face, edge: int, depth: int) -> None:
        mesh = self.mesh
        mid = mesh.vertices[face.edge_vertices[edge]]
        if mid.has_position(depth + 1):
            return

        tagged = face.is_tagged_edge(edge)
        tail_point = mesh.vertices[face.vertices[edge]].position(depth)
        head_point = mesh.vertices[face.vertices[face.next_corner(edge)]].position(depth)

        results = []
        for pivot_is_tail in (True, False):
            corner = edge if pivot_is_tail else face.next_corner(edge)
            vertex = mesh.vertices[face.vertices[corner]]
            if not vertex.special:
                continue
            if not self._has_sectors and (tagged or vertex.tag == VertexTag.SMOOTH):
                continue
            ring, sector, rule, points = self._special_context(face, corner, depth)
            has_override = sector is not None and sector.is_relevant
            # Tagged edges are plain midpoints unless a sector reshapes them;
            # untagged edges need the rule only next to crease and corner vertices
            if not has_override and (tagged or vertex.tag == VertexTag.SMOOTH):
                continue

            mask = rule.crease_sub if tagged else rule.edge_sub
            stencil = self._edge_stencil(face, edge, pivot_is_tail, depth)
            point = mask.to(dtype=stencil.dtype, device=stencil.device) @ stencil
            if has_override:
                if pivot_is_tail:
                    position = ring.start_edge
                else:
                    position = ring.edge_index_toward_next(ring.start_edge)
                point = self._modify(
                    point,
                    rule,
                    ring,
                    points,
                    sector,
                    rule.x1.edge[position].item(),
                    rule.x2.edge[position].item(),
                )
            results.append(point)

        if results:
            point = torch.stack(results).mean(dim=0)
        elif tagged:
            point = 0.5 * (tail_point + head_point)
        else:
            neighbor = mesh.faces[face.neighbors[edge]]
            point = 0.25 * (
                tail_point
                + head_point
                + self._face_point(face, depth)
                + self._face_point(neighbor, depth)
            )

        mid.set_position(depth + 1, point)
