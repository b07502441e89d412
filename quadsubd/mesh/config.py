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

r"""
Default configuration parameters for the subdivision driver.

Built as dictionary objects (for JSON serialization) but with
attribute access (for the driver's code).
"""

import math
from typing import Any

from quadsubd.mesh.utilities._errors import ConfigurationError


class Config(dict):
    r"""
    A flat dict subclass that provides attribute-style access to keys.

    Since it inherits from dict, it's JSON serializable out of the box.

    Example usage:
        config = Config({"max_ring_size": 64})
        print(config.max_ring_size)  # 64
        print(config["max_ring_size"])  # 64
    """

    def __getattr__(self, key: str) -> Any:
        try:
            return self[key]
        except KeyError:
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{key}'")

    def __setattr__(self, key: str, value: Any):
        self[key] = value

    def __delattr__(self, key: str):
        try:
            del self[key]
        except KeyError:
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{key}'")


# ============================================================================
# Default subdivision parameters
# ============================================================================

DEFAULT_SUBDIVISION_CONFIG = Config(
    {
        # Upper bound on faces visited by one ring walk. None uses the number
        # of faces at the current depth.
        "max_ring_size": None,
        # Opening angle of corner sectors that were never declared.
        "default_corner_theta": math.pi / 2,
        # Sector normals closer than this (|n x m|) share a tangent plane.
        "crease_normal_tolerance": 1e-3,
        # Fill limit positions and normals after every subdivide() call.
        "evaluate_limit": False,
    }
)


def resolve_config(overrides: dict | None = None) -> Config:
    r"""
    Merge user overrides over :data:`DEFAULT_SUBDIVISION_CONFIG`.

    Parameters
    ----------
    overrides : dict or None
        Keys to replace. Every key must already exist in the defaults.

    Returns
    -------
    Config
        A fresh Config; the defaults are never mutated.

    Raises
    ------
    ConfigurationError
        If ``overrides`` contains an unknown key or an invalid value.
    """
    config = Config(DEFAULT_SUBDIVISION_CONFIG)
    if overrides is None:
        return config

    unknown = sorted(set(overrides) - set(config))
    if unknown:
        raise ConfigurationError(
            f"Unknown subdivision config keys {unknown=}; "
            f"expected a subset of {sorted(config)}."
        )
    config.update(overrides)

    if config.max_ring_size is not None and config.max_ring_size < 1:
        raise ConfigurationError(
            f"max_ring_size must be positive or None, got {config.max_ring_size=}"
        )
    if not 0.0 < config.default_corner_theta < math.pi:
        raise ConfigurationError(
            f"default_corner_theta must lie in (0, pi) since undeclared corners "
            f"are convex, got {config.default_corner_theta=}"
        )
    if config.crease_normal_tolerance < 0:
        raise ConfigurationError(
            f"crease_normal_tolerance must be non-negative, got "
            f"{config.crease_normal_tolerance=}"
        )
    return config
