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

"""Pytest configuration and shared fixtures for quadsubd.mesh tests.

All fixtures defined here are automatically available to all test files
without explicit imports. Mesh fixtures use float64 so that comparisons can
use tight tolerances.
"""

import math

import pytest
import torch

from quadsubd.mesh import VertexFlag, build_control_mesh

### Pytest Hooks ###


def pytest_configure(config):
    """Register custom pytest markers used in mesh tests."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow-running (for optional exclusion)"
    )


### Control Mesh Data ###

CUBE_POINTS = [
    [0.0, 0.0, 0.0],
    [1.0, 0.0, 0.0],
    [1.0, 1.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.0, 0.0, 1.0],
    [1.0, 0.0, 1.0],
    [1.0, 1.0, 1.0],
    [0.0, 1.0, 1.0],
]

# Counter-clockwise seen from outside
CUBE_FACES = [
    [0, 3, 2, 1],  # bottom
    [4, 5, 6, 7],  # top
    [0, 1, 5, 4],  # front
    [1, 2, 6, 5],  # right
    [2, 3, 7, 6],  # back
    [3, 0, 4, 7],  # left
]


def grid_arrays(nx: int, ny: int, height=None, origin=(0.0, 0.0)):
    """Coordinates and quads of an ``nx`` x ``ny`` cell grid.

    Vertex ``j * (nx + 1) + i`` sits at ``origin + (i, j)`` with height
    ``height(x, y)``; cell ``(i, j)`` is face ``j * nx + i``.
    """
    points = []
    for j in range(ny + 1):
        for i in range(nx + 1):
            x, y = origin[0] + i, origin[1] + j
            points.append([x, y, 0.0 if height is None else height(x, y)])
    faces = []
    for j in range(ny):
        for i in range(nx):
            v = j * (nx + 1) + i
            faces.append([v, v + 1, v + nx + 2, v + nx + 1])
    return points, faces


def mesh_from_faces(points, faces, **kwargs):
    return build_control_mesh(
        torch.tensor(points, dtype=torch.float64),
        [v for face in faces for v in face],
        [len(face) for face in faces],
        **kwargs,
    )


def bumpy_height(x: float, y: float) -> float:
    return 0.3 * math.sin(1.3 * x) + 0.2 * y * y - 0.1 * x * y


### Fixtures ###


@pytest.fixture
def cube_mesh():
    """Unit cube control mesh: 8 valence-3 vertices, closed."""
    return mesh_from_faces(CUBE_POINTS, CUBE_FACES)


@pytest.fixture
def open_cube_mesh():
    """Unit cube without its top face; vertices 4-7 lie on the boundary."""
    return mesh_from_faces(CUBE_POINTS, [f for f in CUBE_FACES if f != [4, 5, 6, 7]])


@pytest.fixture
def single_quad_mesh():
    return mesh_from_faces(
        [[0.0, 0.0, 0.0], [2.0, 0.0, 0.0], [2.0, 1.0, 0.0], [0.0, 1.0, 0.0]],
        [[0, 1, 2, 3]],
    )


@pytest.fixture
def single_triangle_mesh():
    return mesh_from_faces(
        [[0.0, 0.0, 0.0], [3.0, 0.0, 0.0], [0.0, 3.0, 0.0]],
        [[0, 1, 2]],
    )


@pytest.fixture
def make_grid():
    """Factory fixture: ``make_grid(nx, ny, height=None, **build_kwargs)``."""

    def _make(nx: int, ny: int, height=None, origin=(0.0, 0.0), **kwargs):
        points, faces = grid_arrays(nx, ny, height, origin)
        return mesh_from_faces(points, faces, **kwargs)

    return _make


@pytest.fixture
def creased_grid():
    """2 x 2 grid centered on the origin, mirror symmetric in y, creased along y = 0.

    Vertex 4 is a crease vertex with two faces on each side; vertices 3 and 5
    end the crease on the boundary and become corners.
    """
    points, faces = grid_arrays(
        2, 2, height=lambda x, y: 0.5 * y * y + 0.1 * x, origin=(-1.0, -1.0)
    )
    flags = [VertexFlag.NONE] * 9
    for vertex in (3, 4, 5):
        flags[vertex] = VertexFlag.CREASE
    return mesh_from_faces(points, faces, vertex_flags=[int(f) for f in flags])


@pytest.fixture
def cube_arrays():
    """Fresh copies of the cube's (points, faces) lists."""
    return [list(p) for p in CUBE_POINTS], [list(f) for f in CUBE_FACES]


@pytest.fixture
def grid_data():
    """The :func:`grid_arrays` helper."""
    return grid_arrays


@pytest.fixture
def build_mesh():
    """The :func:`mesh_from_faces` helper, float64 ``(points, faces, **kwargs)``."""
    return mesh_from_faces


@pytest.fixture
def bumpy():
    """A smooth non-symmetric height function ``z(x, y)``."""
    return bumpy_height
