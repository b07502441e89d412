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

"""Vertex ring traversal.

The ring of a pivot vertex is the ordered fan of faces around it. Face ``i``
of the ring is entered with the pivot at local corner ``p_i``; the ring's
edge vertex ``E_i`` is ``F_i[p_i + 1]`` and the walk moves to the face across
the edge ``(F_i[p_i - 1], F_i[p_i])``, so ``E_{i + 1} = F_i[p_i - 1]``.

A closed ring of ``k`` faces has ``k`` edge vertices. An open ring, one that
stopped at a boundary (or, for sector rings, at a tagged edge), has ``k + 1``
edge vertices, the last one being ``F_{k - 1}[p_{k - 1} - 1]``.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import torch

from quadsubd.mesh._model import Face, Vertex
from quadsubd.mesh.utilities._errors import TopologyError


@dataclass
class Ring:
    """Ordered fan of faces around a pivot vertex.

    Attributes
    ----------
    pivot : int
        Vertex at the center of the fan.
    faces : list[int]
        Faces in walk order.
    corners : list[int]
        Local index of the pivot in each face.
    closed : bool
        True when the walk returned to its starting face.
    start_edge : int
        Position in ``faces`` of the face the walk started from.
    """

    pivot: int
    faces: list[int]
    corners: list[int]
    closed: bool
    start_edge: int

    @property
    def valence(self) -> int:
        """Number of faces around the pivot, the ``k`` of the rule tables."""
        return len(self.faces)

    @property
    def n_edge_vertices(self) -> int:
        return len(self.faces) if self.closed else len(self.faces) + 1

    def edge_index_toward_next(self, position: int) -> int:
        """Ring edge index of ``E_{i + 1}`` for ring face ``i``."""
        if self.closed:
            return (position + 1) % len(self.faces)
        return position + 1

    def edge_vertices(self, faces: Sequence[Face]) -> list[int]:
        """Vertex indices ``E_0 .. E_{n_edge_vertices - 1}``."""
        result = []
        for face_index, corner in zip(self.faces, self.corners):
            face = faces[face_index]
            result.append(face.vertices[face.next_corner(corner)])
        if not self.closed:
            last = faces[self.faces[-1]]
            result.append(last.vertices[last.prev_corner(self.corners[-1])])
        return result


def _walk(
    faces: Sequence[Face],
    face: int,
    corner: int,
    stop_at_tags: bool,
    max_size: int | None,
) -> Ring:
    limit = len(faces) if max_size is None else max_size
    pivot = faces[face].vertices[corner]

    def _stops(current: Face, edge: int) -> bool:
        if current.neighbors[edge] is None:
            return True
        return stop_at_tags and current.is_tagged_edge(edge)

    def _overflow(next_face: int, visited: set[int]) -> None:
        if next_face in visited:
            raise TopologyError(
                f"Ring around vertex {pivot} revisits face {next_face} before "
                f"closing; the neighbor links around it are inconsistent"
            )
        if len(visited) >= limit:
            raise TopologyError(
                f"Ring around vertex {pivot} exceeds {limit} faces without "
                f"closing or reaching a boundary"
            )

    ### Forward walk across the edge preceding the pivot
    ring_faces = [face]
    ring_corners = [corner]
    visited = {face}
    closed = False
    current_face, current_corner = face, corner
    while True:
        current = faces[current_face]
        edge = current.prev_corner(current_corner)
        if _stops(current, edge):
            break
        next_face = current.neighbors[edge]
        next_corner = current.neighbor_edges[edge]
        if next_face == face:
            if next_corner != corner:
                raise TopologyError(
                    f"Ring around vertex {pivot} re-enters face {face} at corner "
                    f"{next_corner}, expected {corner}"
                )
            closed = True
            break
        _overflow(next_face, visited)
        visited.add(next_face)
        ring_faces.append(next_face)
        ring_corners.append(next_corner)
        current_face, current_corner = next_face, next_corner

    if closed:
        return Ring(pivot, ring_faces, ring_corners, closed=True, start_edge=0)

    ### Open ring: walk the other way across the edge following the pivot
    prefix_faces = []
    prefix_corners = []
    current_face, current_corner = face, corner
    while True:
        current = faces[current_face]
        edge = current_corner
        if _stops(current, edge):
            break
        next_face = current.neighbors[edge]
        next_corner = faces[next_face].next_corner(current.neighbor_edges[edge])
        _overflow(next_face, visited)
        visited.add(next_face)
        prefix_faces.append(next_face)
        prefix_corners.append(next_corner)
        current_face, current_corner = next_face, next_corner

    return Ring(
        pivot,
        prefix_faces[::-1] + ring_faces,
        prefix_corners[::-1] + ring_corners,
        closed=False,
        start_edge=len(prefix_faces),
    )


def build_ring(
    faces: Sequence[Face], face: int, corner: int, max_size: int | None = None
) -> Ring:
    """Collect the fan of faces around ``faces[face].vertices[corner]``.

    The walk only stops at true boundaries (edges without a neighbor).

    Parameters
    ----------
    faces : Sequence[Face]
        Face arena.
    face : int
        Face to start from.
    corner : int
        Local index of the pivot vertex in ``face``.
    max_size : int or None
        Maximum number of faces the walk may visit; None uses ``len(faces)``.

    Returns
    -------
    Ring
        The ordered fan. ``ring.faces[ring.start_edge] == face``.

    Raises
    ------
    TopologyError
        If the walk revisits a face or exceeds ``max_size`` faces.
    """
    return _walk(faces, face, corner, stop_at_tags=False, max_size=max_size)


def build_sector_ring(
    faces: Sequence[Face], face: int, corner: int, max_size: int | None = None
) -> Ring:
    """Like :func:`build_ring`, but also stop at tagged (crease) edges.

    Used for crease and corner pivots so the fan stays within one sector.
    """
    return _walk(faces, face, corner, stop_at_tags=True, max_size=max_size)


def face_centroid(face: Face, vertices: Sequence[Vertex], depth: int) -> torch.Tensor:
    return torch.stack([vertices[v].position(depth) for v in face.vertices]).mean(dim=0)


def diagonal_point(
    face: Face, corner: int, vertices: Sequence[Vertex], depth: int
) -> torch.Tensor:
    """Point opposite ``corner`` across ``face``.

    For quads this is the opposite vertex. Other polygons use the quad proxy
    ``4 * centroid - pivot - next - previous``, which has the same centroid.
    """
    n = face.n_vertices
    if n == 4:
        return vertices[face.vertices[(corner + 2) % 4]].position(depth)
    pivot = vertices[face.vertices[corner]].position(depth)
    after = vertices[face.vertices[(corner + 1) % n]].position(depth)
    before = vertices[face.vertices[(corner - 1) % n]].position(depth)
    return 4.0 * face_centroid(face, vertices, depth) - pivot - after - before


def ring_points(
    ring: Ring, faces: Sequence[Face], vertices: Sequence[Vertex], depth: int
) -> torch.Tensor:
    """Stack ring positions as ``[pivot, E_0 .., D_0 ..]``.

    ``D_i`` is the diagonal point of ring face ``i``. The row layout matches
    :meth:`QuadCoefficients.as_vector`.

    Returns
    -------
    torch.Tensor
        Shape (1 + n_edge_vertices + valence, 3).
    """
    rows = [vertices[ring.pivot].position(depth)]
    rows.extend(vertices[v].position(depth) for v in ring.edge_vertices(faces))
    rows.extend(
        diagonal_point(faces[f], c, vertices, depth)
        for f, c in zip(ring.faces, ring.corners)
    )
    return torch.stack(rows)
