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

"""Tests for vertex ring traversal."""

import pytest

from quadsubd.mesh import Face
from quadsubd.mesh.neighbors import build_ring, build_sector_ring, ring_points
from quadsubd.mesh.utilities import TopologyError


def all_rings(mesh, builder=build_ring):
    for face in mesh.faces_at(0):
        for corner in range(face.n_vertices):
            yield face, corner, builder(mesh.faces, face.index, corner)


class TestClosedMesh:
    def test_every_ring_closes(self, cube_mesh) -> None:
        for _, _, ring in all_rings(cube_mesh):
            assert ring.closed
            assert ring.valence == 3
            assert ring.n_edge_vertices == 3
            assert ring.start_edge == 0

    def test_rings_close_after_subdivision(self, cube_mesh) -> None:
        cube_mesh.subdivide(2)
        for face in cube_mesh.faces_at(2):
            for corner in range(4):
                assert build_ring(cube_mesh.faces, face.index, corner).closed

    def test_ring_starts_at_requested_face(self, cube_mesh) -> None:
        for face, corner, ring in all_rings(cube_mesh):
            assert ring.faces[ring.start_edge] == face.index
            assert ring.corners[ring.start_edge] == corner
            assert all(cube_mesh.faces[f].vertices[c] == ring.pivot for f, c in zip(ring.faces, ring.corners))

    def test_edge_vertices_are_cube_neighbors(self, cube_mesh) -> None:
        ring = build_ring(cube_mesh.faces, 0, 0)  # vertex 0
        assert sorted(ring.edge_vertices(cube_mesh.faces)) == [1, 3, 4]

    def test_ring_is_counter_clockwise(self, make_grid) -> None:
        mesh = make_grid(2, 2)
        ring = build_ring(mesh.faces, 0, 2)  # vertex 4 at (1, 1)
        edge_vertices = ring.edge_vertices(mesh.faces)
        # Face 0 is [0, 1, 4, 3], so E_0 is vertex 3; then around through 1, 5, 7
        assert edge_vertices == [3, 1, 5, 7]

    def test_ring_points_layout(self, make_grid) -> None:
        mesh = make_grid(2, 2)
        ring = build_ring(mesh.faces, 0, 2)
        points = ring_points(ring, mesh.faces, mesh.vertices, 0)
        assert points.shape == (9, 3)
        assert points[0].tolist() == [1.0, 1.0, 0.0]
        # Diagonal of face 0 seen from vertex 4 is vertex 0
        assert points[5].tolist() == [0.0, 0.0, 0.0]


class TestOpenMesh:
    def test_only_free_edge_vertices_are_open(self, open_cube_mesh) -> None:
        open_vertices = set()
        for face, corner, ring in all_rings(open_cube_mesh):
            if not ring.closed:
                open_vertices.add(ring.pivot)
        assert open_vertices == {4, 5, 6, 7}

    def test_open_ring_has_extra_edge_vertex(self, open_cube_mesh) -> None:
        ring = build_ring(open_cube_mesh.faces, 1, 3)  # front face [0, 1, 5, 4], vertex 4
        assert not ring.closed
        assert ring.valence == 2
        assert ring.n_edge_vertices == 3
        edge_vertices = ring.edge_vertices(open_cube_mesh.faces)
        assert edge_vertices[0] in (5, 7) and edge_vertices[-1] in (5, 7)
        assert edge_vertices[1] == 0

    @pytest.mark.parametrize("face, corner", [(0, 1), (1, 0)])
    def test_open_ring_independent_of_start(self, make_grid, face: int, corner: int) -> None:
        mesh = make_grid(2, 1)
        ring = build_ring(mesh.faces, face, corner)  # vertex 1 on the bottom boundary
        assert not ring.closed
        assert ring.faces == [1, 0]
        assert ring.faces[ring.start_edge] == face
        assert ring.edge_vertices(mesh.faces) == [2, 4, 0]


class TestSectorRing:
    def test_stops_at_crease(self, creased_grid) -> None:
        ring = build_sector_ring(creased_grid.faces, 0, 2)  # vertex 4, lower side
        assert not ring.closed
        assert sorted(ring.faces) == [0, 1]
        assert sorted(ring.edge_vertices(creased_grid.faces)[::2]) == [3, 5]

    def test_plain_ring_crosses_crease(self, creased_grid) -> None:
        ring = build_ring(creased_grid.faces, 0, 2)
        assert ring.closed
        assert ring.valence == 4


class TestMalformed:
    def test_probe_limit(self, cube_mesh) -> None:
        with pytest.raises(TopologyError):
            build_ring(cube_mesh.faces, 0, 0, max_size=2)

    def test_revisited_face(self) -> None:
        faces = [
            Face(0, (0, 1, 2, 3)),
            Face(1, (0, 3, 4, 5)),
            Face(2, (0, 5, 6, 7)),
        ]
        faces[0].neighbors[3], faces[0].neighbor_edges[3] = 1, 0
        faces[1].neighbors[3], faces[1].neighbor_edges[3] = 2, 0
        # Corrupt link back into the middle of the fan
        faces[2].neighbors[3], faces[2].neighbor_edges[3] = 1, 0
        with pytest.raises(TopologyError):
            build_ring(faces, 0, 0)
