# misminer/data.py
# Tabular dataset used by the miner plus big-int bitset helpers.
# Nominal cells hold indices into the attribute's value table; missing cells are NaN.

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import ConfigError, DataError

AttrRef = Union[int, str]


# -----------------------
# Bitsets
# -----------------------
def popcount(x: int) -> int:
    return x.bit_count()


def all_bits(n: int) -> int:
    return (1 << n) - 1


def range_bits(start: int, stop: int) -> int:
    """Bitset with rows start..stop-1 set."""
    if stop <= start:
        return 0
    return ((1 << (stop - start)) - 1) << start


def bits_from_mask(mask) -> int:
    """Pack a boolean array (row i -> bit i) into a Python int."""
    mask = np.asarray(mask, dtype=bool)
    if mask.size == 0:
        return 0
    packed = np.packbits(mask, bitorder="little")
    return int.from_bytes(packed.tobytes(), "little")


def mask_from_bits(bits: int, n: int) -> np.ndarray:
    if n == 0:
        return np.zeros(0, dtype=bool)
    raw = np.frombuffer(bits.to_bytes((n + 7) // 8, "little"), dtype=np.uint8)
    return np.unpackbits(raw, count=n, bitorder="little").astype(bool)


# -----------------------
# Attributes / dataset
# -----------------------
@dataclass(frozen=True)
class Attribute:
    name: str
    values: Optional[Tuple[str, ...]] = None  # nominal value table, None if numeric

    @property
    def is_nominal(self) -> bool:
        return self.values is not None

    @property
    def num_values(self) -> int:
        return len(self.values) if self.values is not None else 0

    def format_value(self, v: float) -> str:
        """Short form used in rule descriptions."""
        if self.is_nominal:
            if math.isnan(v):
                return "?"
            return self.label(v)
        return f"{v:.3f}"

    def label(self, v: float) -> str:
        """Nominal label for value index v."""
        i = int(v) if math.isfinite(v) else -1
        if i != v or not (0 <= i < self.num_values):
            raise ConfigError(f"value {v} is not an index into the {self.num_values} labels of '{self.name}'")
        return self.values[i]

    def value_str(self, v: float) -> str:
        """Long form used for ids and example rows."""
        if math.isnan(v):
            return "?"
        if self.is_nominal:
            return self.label(v)
        if v == int(v):
            return f"{int(v):,d}"
        return f"{v:,.4f}"


class Dataset:
    def __init__(
        self,
        values,
        attributes: List[Attribute],
        class_index: Optional[int] = None,
        name: str = "data",
    ):
        values = np.asarray(values, dtype=float)
        if values.ndim != 2:
            raise DataError(f"expected a 2-d value matrix, got shape {values.shape}")
        if values.shape[1] != len(attributes):
            raise DataError(
                f"{values.shape[1]} value columns but {len(attributes)} attributes"
            )
        if class_index is not None and not (0 <= class_index < len(attributes)):
            raise ConfigError(f"class index {class_index} out of range")
        self.values = values
        self.attributes = list(attributes)
        self.class_index = class_index
        self.name = name

    @property
    def n(self) -> int:
        return self.values.shape[0]

    @property
    def num_attributes(self) -> int:
        return len(self.attributes)

    @property
    def class_attribute(self) -> Optional[Attribute]:
        if self.class_index is None:
            return None
        return self.attributes[self.class_index]

    def column(self, j: int) -> np.ndarray:
        return self.values[:, j]

    def class_values(self) -> np.ndarray:
        if self.class_index is None:
            raise ConfigError(f"dataset '{self.name}' has no class attribute")
        return self.values[:, self.class_index]

    def copy(self) -> "Dataset":
        return Dataset(self.values.copy(), self.attributes, self.class_index, self.name)

    def subset(self, indices: Sequence[int]) -> "Dataset":
        idx = np.asarray(indices, dtype=int)
        return Dataset(self.values[idx], self.attributes, self.class_index, self.name)

    def shuffled(self, rng: np.random.Generator) -> "Dataset":
        return self.subset(rng.permutation(self.n))

    def feature_matrix(self) -> np.ndarray:
        """Every column except the class, for estimators."""
        if self.class_index is None:
            return self.values
        return np.delete(self.values, self.class_index, axis=1)

    def attribute_index(self, ref: AttrRef) -> int:
        """
        Resolve 'first', 'last', an attribute name or an integer index
        (negative counts from the end) to a column index.
        """
        m = self.num_attributes
        if isinstance(ref, (int, np.integer)) and not isinstance(ref, bool):
            j = int(ref)
            if j < 0:
                j += m
            if not (0 <= j < m):
                raise ConfigError(f"attribute index {ref} out of range for {m} attributes")
            return j
        if ref == "first":
            return 0
        if ref == "last":
            return m - 1
        for j, att in enumerate(self.attributes):
            if att.name == ref:
                return j
        try:
            return self.attribute_index(int(ref))
        except (TypeError, ValueError):
            pass
        raise ConfigError(
            f"attribute must be 'first', 'last', an attribute name or an index, got {ref!r}"
        )

    def to_frame(self) -> pd.DataFrame:
        cols = {}
        for j, att in enumerate(self.attributes):
            col = self.values[:, j]
            if att.is_nominal:
                cols[att.name] = pd.Categorical.from_codes(
                    np.where(np.isnan(col), -1, col).astype(int), categories=list(att.values)
                )
            else:
                cols[att.name] = col
        return pd.DataFrame(cols)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, class_attr: Optional[AttrRef] = None, name: str = "data") -> "Dataset":
        attributes: List[Attribute] = []
        columns = []
        for col_name in df.columns:
            col = df[col_name]
            if pd.api.types.is_bool_dtype(col):
                attributes.append(Attribute(str(col_name), ("False", "True")))
                columns.append(col.astype(float).to_numpy())
            elif pd.api.types.is_numeric_dtype(col):
                attributes.append(Attribute(str(col_name)))
                columns.append(col.astype(float).to_numpy())
            else:
                labels = sorted({str(v) for v in col.dropna()})
                cat = pd.Categorical(col.map(lambda v: v if pd.isna(v) else str(v)), categories=labels)
                codes = cat.codes.astype(float)
                codes[codes < 0] = np.nan
                attributes.append(Attribute(str(col_name), tuple(labels)))
                columns.append(codes)
        values = np.column_stack(columns) if columns else np.zeros((len(df), 0))
        ds = cls(values, attributes, None, name)
        if class_attr is not None:
            ds.class_index = ds.attribute_index(class_attr)
        return ds


def load_csv(path: str, class_attr: Optional[AttrRef] = "last") -> Dataset:
    df = pd.read_csv(path)
    return Dataset.from_frame(df, class_attr=class_attr, name=str(path))


# -----------------------
# Collaborators
# -----------------------
def remove_column(ds: Dataset, index: int) -> Dataset:
    """Copy of ds without column index; the class index is shifted to follow its column."""
    if not (0 <= index < ds.num_attributes):
        raise ConfigError(f"cannot remove column {index}: out of range")
    if index == ds.class_index:
        raise ConfigError("cannot remove the class column")
    class_index = ds.class_index
    if class_index is not None and index < class_index:
        class_index -= 1
    attributes = ds.attributes[:index] + ds.attributes[index + 1:]
    return Dataset(np.delete(ds.values, index, axis=1), attributes, class_index, ds.name)


def split_on(ds: Dataset, attr: AttrRef, threshold: float, larger_than: bool = True) -> Tuple[Dataset, Dataset]:
    """
    Partition rows into (matching, rest) with matching = value > threshold
    (or <= threshold when larger_than is False). Both sides must be non-empty.
    """
    j = ds.attribute_index(attr)
    col = ds.column(j)
    mask = col > threshold if larger_than else col <= threshold
    n_match = int(mask.sum())
    if n_match == 0 or n_match == ds.n:
        op = ">" if larger_than else "<="
        raise DataError(
            f"Not enough instances in specified subset (Attribute {ds.attributes[j].name} {op} {threshold:.4f})"
        )
    return ds.subset(np.flatnonzero(mask)), ds.subset(np.flatnonzero(~mask))
