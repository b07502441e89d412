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

"""Tests for control-mesh construction, sectors and read-back."""

import math

import pytest
import torch

from quadsubd.mesh import (
    EdgeTag,
    SectorTag,
    VertexFlag,
    VertexTag,
    build_control_mesh,
)
from quadsubd.mesh.utilities import ConfigurationError, RuleLookupError, TopologyError


def flat(faces):
    return [v for face in faces for v in face], [len(face) for face in faces]


@pytest.fixture
def cube_inputs(cube_arrays):
    """Cube as (coordinates tensor, flat indices, counts)."""
    points, faces = cube_arrays
    indices, counts = flat(faces)
    return torch.tensor(points), indices, counts


class TestBuild:
    def test_cube(self, cube_mesh, cube_arrays) -> None:
        assert cube_mesh.depth == 0
        assert cube_mesh.n_vertices_at(0) == 8
        assert len(cube_mesh.faces_at(0)) == 6
        assert cube_mesh.dtype == torch.float64
        assert all(v.tag == VertexTag.SMOOTH for v in cube_mesh.vertices)
        points, _ = cube_arrays
        assert torch.equal(cube_mesh.points(), torch.tensor(points, dtype=torch.float64))

    def test_flat_coordinates(self) -> None:
        mesh = build_control_mesh(
            [0, 0, 0, 1, 0, 0, 1, 1, 0, 0, 1, 0], [0, 1, 2, 3], [4], dtype=torch.float32
        )
        assert mesh.points().shape == (4, 3)
        assert mesh.dtype == torch.float32

    def test_default_dtype_for_integer_coordinates(self) -> None:
        mesh = build_control_mesh(torch.tensor([[0, 0, 0], [1, 0, 0], [0, 1, 0]]), [0, 1, 2], [3])
        assert mesh.dtype == torch.get_default_dtype()

    def test_input_is_copied(self, cube_inputs) -> None:
        coordinates, indices, counts = cube_inputs
        mesh = build_control_mesh(coordinates, indices, counts)
        coordinates[0] = 5.0
        assert mesh.position(0, 0).tolist() == [0.0, 0.0, 0.0]

    def test_face_count_reads_prefix(self, cube_inputs) -> None:
        coordinates, indices, counts = cube_inputs
        mesh = build_control_mesh(coordinates, indices, counts, face_count=2)
        assert len(mesh.faces_at(0)) == 2

    def test_mixed_polygons(self, build_mesh) -> None:
        points = [[0, 0, 0], [1, 0, 0], [2, 0, 0], [2, 1, 0], [1, 1, 0], [0, 1, 0], [1, 2, 0]]
        faces = [[0, 1, 4, 5], [1, 2, 3, 4], [5, 4, 6], [4, 3, 6]]
        mesh = build_mesh(points, faces)
        assert mesh.face_vertices().counts.tolist() == [4, 4, 3, 3]
        assert mesh.vertices[4].tag == VertexTag.SMOOTH
        with pytest.raises(ValueError, match="non-quad"):
            mesh.quad_indices(0)

    def test_isolated_vertex_warns(self, build_mesh, cube_arrays) -> None:
        points, faces = cube_arrays
        with pytest.warns(UserWarning, match="not used by any face"):
            mesh = build_mesh(points + [[5.0, 5.0, 5.0]], faces)
        assert mesh.isolated_vertices == [8]
        mesh.subdivide(1)
        assert mesh.position(8, 1).tolist() == [5.0, 5.0, 5.0]

    def test_repr(self, cube_mesh) -> None:
        assert repr(cube_mesh) == (
            "SubdivisionMesh(depth=0, n_vertices=8, faces_per_depth=[6], "
            "dtype=torch.float64)"
        )

    def test_empty_mesh(self) -> None:
        mesh = build_control_mesh(torch.zeros((0, 3)), [], [])
        assert mesh.points().shape == (0, 3)
        assert mesh.face_vertices().n_sources == 0


class TestBuildErrors:
    def test_coordinate_count(self) -> None:
        with pytest.raises(ConfigurationError, match="3 values per vertex"):
            build_control_mesh([0.0, 0.0, 0.0, 1.0], [0, 1, 2], [3])

    def test_counts_exceed_indices(self, cube_inputs) -> None:
        coordinates, _, _ = cube_inputs
        with pytest.raises(IndexError, match="exceeds"):
            build_control_mesh(coordinates, [0, 1, 2], [4])

    def test_face_count_exceeds_counts(self, cube_inputs) -> None:
        coordinates, _, _ = cube_inputs
        with pytest.raises(IndexError, match="face_count"):
            build_control_mesh(coordinates, [0, 1, 2, 3], [4], face_count=2)

    def test_vertex_out_of_range(self, cube_inputs) -> None:
        coordinates, _, _ = cube_inputs
        with pytest.raises(IndexError, match="outside"):
            build_control_mesh(coordinates, [0, 1, 2, 8], [4])

    def test_degenerate_face(self, cube_inputs) -> None:
        coordinates, _, _ = cube_inputs
        with pytest.raises(ConfigurationError, match="at least 3"):
            build_control_mesh(coordinates, [0, 1], [2])

    def test_repeated_vertex(self, cube_inputs) -> None:
        coordinates, _, _ = cube_inputs
        with pytest.raises(ConfigurationError, match="repeats"):
            build_control_mesh(coordinates, [0, 1, 1, 2], [4])

    def test_flag_length(self, cube_inputs) -> None:
        with pytest.raises(ConfigurationError, match="one flag per vertex"):
            build_control_mesh(*cube_inputs, vertex_flags=[0, 1])

    def test_unknown_flag(self, cube_inputs) -> None:
        with pytest.raises(ConfigurationError, match="Unknown vertex flag"):
            build_control_mesh(*cube_inputs, vertex_flags=[8] + [0] * 7)

    def test_unknown_crease_edge(self, cube_inputs) -> None:
        with pytest.raises(ConfigurationError, match="not edges of the mesh"):
            build_control_mesh(*cube_inputs, crease_edges=[[0, 6]])

    def test_inconsistent_orientation(self, build_mesh, cube_arrays) -> None:
        points, faces = cube_arrays
        faces[1] = [7, 6, 5, 4]
        with pytest.raises(TopologyError):
            build_mesh(points, faces)


class TestTags:
    def test_grid_boundary_tags(self, make_grid) -> None:
        mesh = make_grid(2, 2)
        tags = [v.tag for v in mesh.vertices]
        assert tags[4] == VertexTag.SMOOTH
        for vertex in (0, 1, 2, 3, 5, 6, 7, 8):
            assert tags[vertex] == VertexTag.CREASE

    def test_flagged_crease(self, creased_grid) -> None:
        tags = [v.tag for v in creased_grid.vertices]
        assert tags[4] == VertexTag.CREASE
        assert tags[3] == VertexTag.CORNER
        assert tags[5] == VertexTag.CORNER
        face = creased_grid.faces[0]  # [0, 1, 4, 3]
        assert face.edge_tags[2] == EdgeTag.CREASE
        assert face.edge_tags[1] == EdgeTag.UNTAGGED

    def test_explicit_crease_edges(self, make_grid) -> None:
        mesh = make_grid(2, 2, crease_edges=[[3, 4], [5, 4]])
        assert mesh.vertices[4].tag == VertexTag.CREASE
        assert mesh.faces[0].edge_tags[2] == EdgeTag.CREASE
        # The twin half-edge on the far side is tagged as well
        assert mesh.faces[2].edge_tags[0] == EdgeTag.CREASE

    def test_dart_stays_smooth(self, make_grid) -> None:
        mesh = make_grid(2, 2, crease_edges=[[1, 4]])
        assert mesh.vertices[4].tag == VertexTag.SMOOTH

    def test_three_creases_make_a_corner(self, make_grid) -> None:
        mesh = make_grid(2, 2, crease_edges=[[1, 4], [3, 4], [4, 5]])
        assert mesh.vertices[4].tag == VertexTag.CORNER

    def test_corner_flag(self, make_grid) -> None:
        flags = [0] * 9
        flags[0] = int(VertexFlag.CORNER)
        mesh = make_grid(2, 2, vertex_flags=flags)
        assert mesh.vertices[0].tag == VertexTag.CORNER

    def test_corner_flag_needs_two_tagged_edges(self, make_grid) -> None:
        flags = [0] * 9
        flags[4] = int(VertexFlag.CORNER)
        with pytest.raises(ConfigurationError, match="at least two"):
            make_grid(2, 2, vertex_flags=flags)


class TestSectors:
    def test_add_and_replace(self, make_grid) -> None:
        mesh = make_grid(2, 2)
        mesh.add_sector(0, 2, flatness=0.5)
        sector = mesh.add_sector(0, 2, normal=[0.0, 0.0, 2.0], normal_blend=1.0)
        assert mesh.faces[0].sectors[2] is sector
        assert sector.flatness is None
        assert sector.normal.tolist() == [0.0, 0.0, 1.0]

    def test_remove(self, make_grid) -> None:
        mesh = make_grid(2, 2)
        mesh.add_sector(0, 2, flatness=0.5)
        mesh.remove_sector(0, 2)
        mesh.remove_sector(0, 2)
        assert mesh.faces[0].sectors == {}

    @pytest.mark.parametrize("face, corner", [(4, 0), (-1, 0), (0, 4)])
    def test_index_errors(self, make_grid, face: int, corner: int) -> None:
        mesh = make_grid(2, 2)
        with pytest.raises(IndexError):
            mesh.add_sector(face, corner, flatness=0.5)

    def test_untagged_sector_at_corner(self, make_grid) -> None:
        flags = [0] * 9
        flags[0] = int(VertexFlag.CORNER)
        mesh = make_grid(2, 2, vertex_flags=flags)
        with pytest.raises(RuleLookupError):
            mesh.add_sector(0, 0, flatness=0.5)

    def test_convex_sector_at_smooth_vertex(self, make_grid) -> None:
        mesh = make_grid(2, 2)
        with pytest.raises(RuleLookupError):
            mesh.add_sector(0, 2, tag=SectorTag.CONVEX, theta=1.0)

    @pytest.mark.parametrize(
        "tag, theta",
        [
            (SectorTag.CONVEX, None),
            (SectorTag.CONVEX, math.pi),
            (SectorTag.CONCAVE, math.pi / 2),
            (SectorTag.CONCAVE, 2 * math.pi),
        ],
    )
    def test_corner_theta(self, make_grid, tag, theta) -> None:
        flags = [0] * 9
        flags[0] = int(VertexFlag.CORNER)
        mesh = make_grid(2, 2, vertex_flags=flags)
        with pytest.raises(ConfigurationError):
            mesh.add_sector(0, 0, tag=tag, theta=theta)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"flatness": 1.5},
            {"flatness": -0.1},
            {"normal": [0.0, 0.0, 1.0]},
            {"normal_blend": 0.5},
            {"normal": [0.0, 1.0], "normal_blend": 0.5},
            {"normal": [0.0, 0.0, 0.0], "normal_blend": 0.5},
            {"normal": [0.0, 0.0, 1.0], "normal_blend": 2.0},
        ],
    )
    def test_invalid_values(self, make_grid, kwargs) -> None:
        mesh = make_grid(2, 2)
        with pytest.raises(ConfigurationError):
            mesh.add_sector(0, 2, **kwargs)

    def test_frozen_after_subdivision(self, make_grid) -> None:
        mesh = make_grid(2, 2)
        mesh.subdivide(1)
        with pytest.raises(ConfigurationError, match="before subdivision"):
            mesh.add_sector(0, 2, flatness=0.5)
        with pytest.raises(ConfigurationError):
            mesh.remove_sector(0, 2)


class TestReadBack:
    def test_points_per_depth(self, cube_mesh) -> None:
        cube_mesh.subdivide(2)
        assert cube_mesh.points(0).shape == (8, 3)
        assert cube_mesh.points(1).shape == (26, 3)
        assert cube_mesh.points().shape == (98, 3)
        assert cube_mesh.n_vertices_at(1) == 26

    def test_depth_out_of_range(self, cube_mesh) -> None:
        with pytest.raises(IndexError):
            cube_mesh.points(1)
        with pytest.raises(IndexError):
            cube_mesh.faces_at(-1)

    def test_quad_indices(self, cube_mesh) -> None:
        cube_mesh.subdivide(1)
        quads = cube_mesh.quad_indices()
        assert quads.shape == (24, 4)
        assert quads.dtype == torch.int64
        assert quads.max().item() == 25

    def test_triangle_mesh_becomes_quads(self, single_triangle_mesh) -> None:
        with pytest.raises(ValueError):
            single_triangle_mesh.quad_indices(0)
        single_triangle_mesh.subdivide(1)
        assert single_triangle_mesh.quad_indices().shape == (3, 4)

    def test_clone_is_independent(self, cube_mesh) -> None:
        cube_mesh.subdivide(1)
        copy = cube_mesh.clone()
        copy.subdivide(2)
        assert cube_mesh.depth == 1
        assert copy.depth == 2
        assert cube_mesh._subdivider is not None
        assert torch.equal(copy.points(1), cube_mesh.points(1))

    def test_quad_indices_match_input(self, grid_data, build_mesh) -> None:
        points, faces = grid_data(3, 1)
        mesh = build_mesh(points, faces)
        assert mesh.quad_indices(0).tolist() == faces
