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

"""Tags, flags and the Sector record shared across the subdivision engine."""

import enum
import math
from dataclasses import dataclass

import torch

from quadsubd.mesh.utilities._errors import ConfigurationError
from quadsubd.mesh.utilities._tolerances import safe_eps


class VertexFlag(enum.IntFlag):
    """Per-vertex input flags of the control mesh.

    An edge whose two endpoints both carry CREASE or CORNER is tagged as a
    crease. CORNER additionally forces the vertex onto a corner rule.
    """

    NONE = 0
    CREASE = 1
    CORNER = 2


class VertexTag(enum.IntEnum):
    """Topological role of a vertex, derived from its tagged incident edges."""

    SMOOTH = 0
    CREASE = 1
    CORNER = 2


class EdgeTag(enum.IntEnum):
    UNTAGGED = 0
    CREASE = 1


class SectorTag(enum.IntEnum):
    """User-declared classification of a sector around a vertex."""

    UNTAGGED = 0
    CONVEX = 1
    CONCAVE = 2


class RuleKind(enum.Enum):
    """The four coefficient-rule variants."""

    INTERIOR = "interior"
    CREASE = "crease"
    CONVEX_CORNER = "convex_corner"
    CONCAVE_CORNER = "concave_corner"

    @property
    def is_corner(self) -> bool:
        return self in (RuleKind.CONVEX_CORNER, RuleKind.CONCAVE_CORNER)


def validate_theta(kind: RuleKind, theta: float) -> None:
    """Check that a corner opening angle is admissible for its rule.

    Convex corners need ``0 < theta < pi`` and concave corners need
    ``pi < theta < 2 pi``; at the excluded values the corner tables divide
    by zero.

    Raises
    ------
    ConfigurationError
        If ``theta`` lies outside the admissible open interval.
    """
    if kind is RuleKind.CONVEX_CORNER and not 0.0 < theta < math.pi:
        raise ConfigurationError(
            f"Convex sectors need an opening angle in (0, pi), got {theta=}"
        )
    if kind is RuleKind.CONCAVE_CORNER and not math.pi < theta < 2.0 * math.pi:
        raise ConfigurationError(
            f"Concave sectors need an opening angle in (pi, 2 pi), got {theta=}"
        )


@dataclass(eq=False)
class Sector:
    """Shape override attached to one (face, local vertex) pair.

    Attributes
    ----------
    tag : SectorTag
        UNTAGGED for smooth and crease vertices, CONVEX or CONCAVE for corners.
    flatness : float or None
        Blend factor in [0, 1] toward the flat tangent-plane shape. None means
        the sector does not override flatness.
    theta : float or None
        Opening angle of a corner sector in radians. Ignored for UNTAGGED.
    normal : torch.Tensor or None
        Unit target limit normal, shape (3,).
    normal_blend : float or None
        Blend factor in [0, 1] toward ``normal``. Required when ``normal`` is
        given.
    """

    tag: SectorTag = SectorTag.UNTAGGED
    flatness: float | None = None
    theta: float | None = None
    normal: torch.Tensor | None = None
    normal_blend: float | None = None

    def __post_init__(self):
        self.tag = SectorTag(self.tag)

        for name in ("flatness", "normal_blend"):
            value = getattr(self, name)
            if value is not None and not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"Sector {name} must lie in [0, 1] or be None, got {value=}"
                )

        if (self.normal is None) != (self.normal_blend is None):
            raise ConfigurationError(
                f"Sector normal and normal_blend must be given together, got "
                f"normal={self.normal}, {self.normal_blend=}"
            )

        if self.normal is not None:
            normal = torch.as_tensor(self.normal, dtype=torch.float64).reshape(-1)
            if normal.shape != (3,):
                raise ConfigurationError(
                    f"Sector normal must have 3 components, got {tuple(normal.shape)=}"
                )
            norm = torch.linalg.vector_norm(normal).item()
            if norm <= safe_eps(normal.dtype):
                raise ConfigurationError("Sector normal must be non-zero")
            self.normal = normal / norm

    @property
    def modifies_flatness(self) -> bool:
        return self.flatness is not None and self.flatness != 0.0

    @property
    def modifies_normal(self) -> bool:
        return self.normal is not None

    @property
    def is_relevant(self) -> bool:
        """Whether the sector changes any computed position."""
        return self.modifies_flatness or self.modifies_normal
