"""
Supervision matrices in one of three storage encodings.

- FULL: a dense 2-D tensor.
- SPARSE: each row holds a list of (column, value) pairs, the usual way of
  storing posteriors over many classes.
- COMPRESSED: values quantized to 16 bits against a global min/range
  header, the way features are kept on disk to save space.

Whatever the encoding, ``to_dense()`` gives the values every numeric
consumer works with.
"""

from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
import torch


class MatrixType(Enum):
    FULL = "full"
    SPARSE = "sparse"
    COMPRESSED = "compressed"


_UINT16_MAX = 65535


class GeneralMatrix:
    """A matrix that may be dense, sparse or compressed."""

    def __init__(
        self,
        matrix_type: MatrixType,
        num_rows: int,
        num_cols: int,
        dense: Optional[torch.Tensor] = None,
        sparse: Optional[torch.Tensor] = None,
        compressed: Optional[Tuple[float, float, np.ndarray]] = None,
    ):
        self.matrix_type = matrix_type
        self.num_rows = num_rows
        self.num_cols = num_cols
        self._dense = dense
        self._sparse = sparse
        self._compressed = compressed

    @classmethod
    def full(cls, data) -> "GeneralMatrix":
        dense = torch.as_tensor(data)
        if not dense.is_floating_point():
            dense = dense.float()
        if dense.ndim != 2:
            raise ValueError(f"Expected a 2-D matrix, got shape {tuple(dense.shape)}")
        return cls(MatrixType.FULL, dense.shape[0], dense.shape[1], dense=dense)

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Iterable[Tuple[int, float]]],
        num_cols: int,
        dtype: torch.dtype = torch.float32,
    ) -> "GeneralMatrix":
        """
        Build a sparse matrix from per-row (column, value) pairs.

        Args:
            rows: One iterable of (column, value) pairs per row
            num_cols: Number of columns of the matrix

        Returns:
            GeneralMatrix of type SPARSE
        """
        row_idx, col_idx, values = [], [], []
        for r, pairs in enumerate(rows):
            for c, v in pairs:
                if not 0 <= c < num_cols:
                    raise ValueError(
                        f"Column index {c} out of range for {num_cols} columns"
                    )
                row_idx.append(r)
                col_idx.append(c)
                values.append(v)
        indices = torch.tensor([row_idx, col_idx], dtype=torch.long).reshape(2, -1)
        sparse = torch.sparse_coo_tensor(
            indices,
            torch.tensor(values, dtype=dtype),
            size=(len(rows), num_cols),
        ).coalesce()
        return cls(MatrixType.SPARSE, len(rows), num_cols, sparse=sparse)

    @classmethod
    def compress(cls, data) -> "GeneralMatrix":
        """Quantize a dense matrix to 16 bits per value."""
        array = np.asarray(
            data.detach().cpu().numpy() if isinstance(data, torch.Tensor) else data,
            dtype=np.float64,
        )
        if array.ndim != 2:
            raise ValueError(f"Expected a 2-D matrix, got shape {array.shape}")
        if array.size == 0:
            min_value, value_range = 0.0, 0.0
            payload = np.zeros(array.shape, dtype=np.uint16)
        else:
            min_value = float(array.min())
            value_range = float(array.max()) - min_value
            if value_range == 0.0:
                payload = np.zeros(array.shape, dtype=np.uint16)
            else:
                scaled = (array - min_value) / value_range * _UINT16_MAX
                payload = np.clip(np.rint(scaled), 0, _UINT16_MAX).astype(np.uint16)
        return cls(
            MatrixType.COMPRESSED,
            array.shape[0],
            array.shape[1],
            compressed=(min_value, value_range, payload),
        )

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.num_rows, self.num_cols)

    def sparse_tensor(self) -> torch.Tensor:
        if self.matrix_type != MatrixType.SPARSE:
            raise TypeError(f"Matrix is {self.matrix_type.value}, not sparse")
        return self._sparse

    def to_dense(
        self,
        dtype: Optional[torch.dtype] = None,
        device: Optional[torch.device] = None,
    ) -> torch.Tensor:
        """Decode to a dense tensor (a fresh copy, safe to modify)."""
        if self.matrix_type == MatrixType.FULL:
            dense = self._dense.clone()
        elif self.matrix_type == MatrixType.SPARSE:
            dense = self._sparse.to_dense()
        else:
            min_value, value_range, payload = self._compressed
            decoded = min_value + value_range * (payload.astype(np.float64) / _UINT16_MAX)
            dense = torch.from_numpy(decoded)
            if dtype is None:
                dtype = torch.float32
        return dense.to(dtype=dtype or dense.dtype, device=device)

    def __repr__(self) -> str:
        return (
            f"GeneralMatrix(type={self.matrix_type.value}, "
            f"rows={self.num_rows}, cols={self.num_cols})"
        )
