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

r"""Limit positions and normals of a subdivided mesh.

For every vertex the coefficient rule of its ring gives the limit position
``a0 = l0 . P`` and the two limit tangents ``a1 = l1 . P``, ``a2 = l2 . P``.
The limit normal is their normalized cross product. Vertices on a crease
belong to two surface sheets and get a normal per sheet: the first sheet's
normal is stored as :attr:`Vertex.normal`, the second as
:attr:`Vertex.secondary_normal`.
"""

from typing import TYPE_CHECKING

import torch

from quadsubd.mesh._types import VertexTag
from quadsubd.mesh.neighbors._ring import ring_points
from quadsubd.mesh.subdivision.catmull_clark import CatmullClarkSubdivider
from quadsubd.mesh.utilities._tolerances import normalize

if TYPE_CHECKING:
    from quadsubd.mesh.control_mesh import SubdivisionMesh


def evaluate_limit(
    mesh: "SubdivisionMesh",
    depth: int | None = None,
    subdivider: CatmullClarkSubdivider | None = None,
    config: dict | None = None,
) -> torch.Tensor:
    """Fill limit positions and normals of every vertex present at ``depth``.

    Parameters
    ----------
    mesh : SubdivisionMesh
        Mesh to evaluate.
    depth : int or None
        Depth whose rings are used; defaults to the deepest one.
    subdivider : CatmullClarkSubdivider or None
        Driver whose rule cache and configuration to use. A new one is
        created from ``config`` when omitted.
    config : dict or None
        Configuration overrides for a newly created driver.

    Returns
    -------
    torch.Tensor
        Limit positions, shape (n_vertices_at(depth), 3).
    """
    if subdivider is None:
        subdivider = CatmullClarkSubdivider(mesh, config)
    depth = mesh.depth if depth is None else depth
    faces = mesh.faces_at(depth)

    sheets: dict[int, list[frozenset[int]]] = {}
    for face in faces:
        for corner in range(face.n_vertices):
            vertex = mesh.vertices[face.vertices[corner]]
            seen = sheets.setdefault(vertex.index, [])
            if seen and vertex.tag == VertexTag.SMOOTH:
                continue

            ring = subdivider.ring(face.index, corner)
            key = frozenset(ring.faces)
            if key in seen or len(seen) >= 2:
                continue
            seen.append(key)

            rule = subdivider.rule(vertex, ring, subdivider.ring_sector(ring))
            points = ring_points(ring, mesh.faces, mesh.vertices, depth)
            a1 = rule.l1.apply(points)
            a2 = rule.l2.apply(points)
            # Corner frames run counter-clockwise from a1 to a2, the others
            # from a2 to a1
            if rule.kind.is_corner:
                normal = normalize(torch.linalg.cross(a1, a2))
            else:
                normal = normalize(torch.linalg.cross(a2, a1))

            if len(seen) == 1:
                vertex.limit_position = rule.l0.apply(points)
                vertex.normal = normal
                vertex.secondary_normal = None
            else:
                vertex.secondary_normal = normal

    for vertex_index in mesh.isolated_vertices:
        vertex = mesh.vertices[vertex_index]
        vertex.limit_position = vertex.position(depth)

    count = mesh.n_vertices_at(depth)
    if count == 0:
        return torch.empty((0, 3), dtype=mesh.dtype)
    return torch.stack([mesh.vertices[i].limit_position for i in range(count)])
