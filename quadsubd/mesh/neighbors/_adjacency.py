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

"""Ragged adjacency storage for reading back polygon connectivity.

Control meshes may mix polygon sizes, so face-to-vertex connectivity of depth
0 is ragged. It is stored with offset-indices encoding.
"""

from collections.abc import Sequence

import torch
from tensordict import tensorclass


@tensorclass
class Adjacency:
    """Ragged adjacency list stored with offset-indices encoding.

    Attributes:
        offsets: Indices into the indices array marking the start of each list.
            Shape (n_sources + 1,), dtype int64. The i-th source's targets are
            indices[offsets[i]:offsets[i+1]].
        indices: Flattened array of all target indices.
            Shape (total_neighbors,), dtype int64.

    Examples
    --------
        >>> adj = Adjacency(
        ...     offsets=torch.tensor([0, 3, 7]),
        ...     indices=torch.tensor([0, 1, 2, 2, 1, 3, 4]),
        ... )
        >>> adj.to_list()
        [[0, 1, 2], [2, 1, 3, 4]]
    """

    offsets: torch.Tensor  # shape: (n_sources + 1,), dtype: int64
    indices: torch.Tensor  # shape: (total_neighbors,), dtype: int64

    def __post_init__(self):
        if len(self.offsets) < 1:
            raise ValueError(
                f"Offsets array must have length >= 1 (n_sources + 1), but got "
                f"{len(self.offsets)=}."
            )
        if self.offsets[0].item() != 0:
            raise ValueError(f"First offset must be 0, but got {self.offsets[0].item()=}.")
        last_offset = self.offsets[-1].item()
        indices_length = len(self.indices)
        if last_offset != indices_length:
            raise ValueError(
                f"Last offset must equal length of indices, but got "
                f"{last_offset=} != {indices_length=}."
            )

    def to_list(self) -> list[list[int]]:
        """Convert adjacency to a ragged list-of-lists representation.

        Returns
        -------
        list[list[int]]
            Ragged list where result[i] contains all targets of source i.
        """
        offsets = self.offsets.tolist()
        indices = self.indices.tolist()
        return [indices[start:end] for start, end in zip(offsets[:-1], offsets[1:])]

    @property
    def n_sources(self) -> int:
        """Number of source elements (faces) in the adjacency."""
        return len(self.offsets) - 1

    @property
    def counts(self) -> torch.Tensor:
        """Number of targets for each source element, shape (n_sources,)."""
        return self.offsets[1:] - self.offsets[:-1]


def build_adjacency_from_lists(
    lists: Sequence[Sequence[int]],
    device: torch.device | str = "cpu",
) -> Adjacency:
    """Build an Adjacency from ragged Python lists.

    Examples
    --------
        >>> build_adjacency_from_lists([[0, 1, 2], [], [3]]).counts.tolist()
        [3, 0, 1]
    """
    counts = torch.tensor([len(items) for items in lists], dtype=torch.int64, device=device)
    offsets = torch.zeros(len(lists) + 1, dtype=torch.int64, device=device)
    offsets[1:] = torch.cumsum(counts, dim=0)
    indices = torch.tensor(
        [index for items in lists for index in items], dtype=torch.int64, device=device
    )
    return Adjacency(offsets=offsets, indices=indices)
