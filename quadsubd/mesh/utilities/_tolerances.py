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

"""Dtype-aware numerical tolerances for subdivision computations.

Normalising target normals and crease directions divides by a vector length.
A hardcoded floor like ``1e-10`` is wrong for meshes far from unit scale, so
the floor is derived from the dtype alone:
``safe_eps(dtype) = torch.finfo(dtype).tiny ** 0.25``.

==========  =============  =============================
dtype       ``safe_eps``   ``1 / safe_eps ** 2``
==========  =============  =============================
float32     ~3.3e-10       ~9.2e+18  (well below 3.4e38)
float64     ~1.2e-77       ~6.7e+153 (well below 1.8e308)
==========  =============  =============================
"""

import torch


def safe_eps(dtype: torch.dtype) -> float:
    """Return a dtype-aware safe epsilon for preventing division by zero.

    Parameters
    ----------
    dtype : torch.dtype
        The floating-point dtype (e.g. ``torch.float32``,
        ``torch.float64``).

    Returns
    -------
    float
        ``torch.finfo(dtype).tiny ** 0.25``.

    Examples
    --------
    >>> safe_eps(torch.float32)  # doctest: +ELLIPSIS
    3.3...e-10
    """
    return torch.finfo(dtype).tiny ** 0.25


def normalize(vector: torch.Tensor) -> torch.Tensor:
    """Scale a 3-vector to unit length, flooring the norm at :func:`safe_eps`."""
    norm = torch.linalg.vector_norm(vector).clamp(min=safe_eps(vector.dtype))
    return vector / norm
