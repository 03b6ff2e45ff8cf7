"""
Core data structure for GeoMx count matrices and their annotations.

AnnotatedMatrixStore unifies one or more numerical matrices (raw counts,
normalized values, ...) with three parallel annotation tables: per-feature
(probe) metadata, per-sample (segment) metadata and per-sample run protocol
metadata.

Biological Context:
    A GeoMx experiment produces one count per probe per segment:
    - Rows = features (probes, identified by RTS_ID; mapped to gene targets)
    - Columns = samples (segments of a region of interest)
    - Values = deduplicated read counts, later normalized

    Analysts constantly move between the counts and their context: "which
    segments are tumour?", "which probes are negative controls?", "what was
    the sequencing saturation of this run?". The store keeps all of that
    aligned under every subset and derived matrix.

Engineering Design:
    - Immutable: operations return new instances; matrices are read-only
    - Validated: constructor checks shapes and key sets of every component
    - Shared storage: derived stores reuse unchanged read-only matrices

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from geomxset.core.store import AnnotatedMatrixStore
    >>>
    >>> feature_ids = pd.Index(["RTS001", "RTS002", "RTS003"])
    >>> sample_ids = pd.Index(["A", "B"])
    >>> store = AnnotatedMatrixStore(
    ...     assays={"raw": np.array([[1, 2], [3, 4], [5, 6]])},
    ...     feature_ids=feature_ids,
    ...     sample_ids=sample_ids,
    ...     sample_annotation=pd.DataFrame({"group": ["X", "Y"]}, index=sample_ids),
    ... )
    >>> store.group_apply("samples", "group", np.mean)
    {'X': 3.0, 'Y': 4.0}
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional, Union

import numpy as np
import pandas as pd

from geomxset.core.axis import Axis
from geomxset.core.errors import NotFoundError, SchemaMismatchError

__all__ = ['AnnotatedMatrixStore', 'RAW_ASSAY', 'DEFAULT_DIM_LABELS', 'describe_key_mismatch']


RAW_ASSAY = 'raw'
DEFAULT_DIM_LABELS = ('TargetName', 'SampleID')

Predicate = Union[None, slice, np.ndarray, pd.Series, Callable[[pd.DataFrame], Any], Iterable]


def _freeze(values: np.ndarray) -> np.ndarray:
    """Return a read-only float array, copying unless it already is one."""
    if values.flags.writeable or values.dtype != np.float64:
        try:
            values = np.array(values, dtype=float)
        except (TypeError, ValueError) as e:
            raise TypeError(f"matrix values must be numeric: {e}") from e
        values.setflags(write=False)
    return values


def describe_key_mismatch(expected: pd.Index, actual: pd.Index, what: str) -> str:
    missing = expected.difference(actual)
    extra = actual.difference(expected)
    if len(missing) == 0 and len(extra) == 0:
        return f"{what} has the same keys in a different order"
    parts = []
    if len(missing):
        parts.append(f"{len(missing)} missing (e.g. {list(missing[:3])})")
    if len(extra):
        parts.append(f"{len(extra)} unexpected (e.g. {list(extra[:3])})")
    return f"{what} keys disagree: " + ", ".join(parts)


def _is_missing(value: Any) -> bool:
    return pd.api.types.is_scalar(value) and bool(pd.isna(value))


def _is_boolean_series(series: pd.Series) -> bool:
    """True for bool dtypes and for object columns of booleans with gaps."""
    if pd.api.types.is_bool_dtype(series.dtype):
        return True
    if series.dtype != object:
        return False
    present = series.dropna()
    return len(present) > 0 and all(isinstance(v, (bool, np.bool_)) for v in present)


class AnnotatedMatrixStore:
    """
    Immutable container for named count matrices + feature/sample/protocol annotations.

    Attributes:
        assay_names: Names of the stored matrices (``raw`` first when loaded)
        feature_ids: Row identifiers (probe RTS_IDs)
        sample_ids: Column identifiers (segment / DCC file IDs)
        feature_annotation: Per-feature metadata (TargetName, CodeClass, ...)
        sample_annotation: Per-sample biological annotations
        protocol_annotation: Per-sample run metadata (software version, reads)
        experiment: Experiment-wide values (panel, PKC modules)

    Shape Invariants:
        - every matrix has shape (len(feature_ids), len(sample_ids))
        - feature_annotation.index equals feature_ids
        - sample_annotation.index and protocol_annotation.index equal sample_ids
        - feature and sample IDs are unique
    """

    def __init__(
        self,
        assays: Mapping[str, np.ndarray],
        feature_ids: pd.Index,
        sample_ids: pd.Index,
        feature_annotation: Optional[pd.DataFrame] = None,
        sample_annotation: Optional[pd.DataFrame] = None,
        protocol_annotation: Optional[pd.DataFrame] = None,
        experiment: Optional[Mapping[str, Any]] = None,
        dim_labels: tuple[str, str] = DEFAULT_DIM_LABELS,
    ):
        """
        Initialize the store with validation.

        Args:
            assays: Mapping of matrix name to 2-D numeric array (features × samples)
            feature_ids: Row identifiers
            sample_ids: Column identifiers
            feature_annotation: DataFrame indexed exactly by feature_ids (None = empty)
            sample_annotation: DataFrame indexed exactly by sample_ids (None = empty)
            protocol_annotation: DataFrame indexed exactly by sample_ids (None = empty)
            experiment: Experiment-wide metadata
            dim_labels: (feature field, sample field) used for display labels

        Raises:
            TypeError: If components have the wrong types
            ValueError: If no matrix is given or a matrix name is invalid
            SchemaMismatchError: If shapes or key sets disagree, or IDs repeat
        """
        # Type validation
        if not isinstance(assays, Mapping):
            raise TypeError(f"assays must be a mapping of name -> array, got {type(assays)}")
        if not isinstance(feature_ids, pd.Index):
            raise TypeError(f"feature_ids must be pd.Index, got {type(feature_ids)}")
        if not isinstance(sample_ids, pd.Index):
            raise TypeError(f"sample_ids must be pd.Index, got {type(sample_ids)}")
        if len(assays) == 0:
            raise ValueError("At least one matrix is required")

        if feature_ids.has_duplicates:
            dupes = feature_ids[feature_ids.duplicated()].unique()
            raise SchemaMismatchError(f"Duplicate feature IDs: {list(dupes[:5])}")
        if sample_ids.has_duplicates:
            dupes = sample_ids[sample_ids.duplicated()].unique()
            raise SchemaMismatchError(f"Duplicate sample IDs: {list(dupes[:5])}")

        expected_shape = (len(feature_ids), len(sample_ids))
        frozen: dict[str, np.ndarray] = {}
        for name, values in assays.items():
            if not isinstance(name, str) or not name:
                raise ValueError(f"Matrix names must be non-empty strings, got {name!r}")
            if not isinstance(values, np.ndarray):
                raise TypeError(f"matrix '{name}' must be np.ndarray, got {type(values)}")
            if values.ndim != 2:
                raise SchemaMismatchError(f"matrix '{name}' must be 2D, got shape {values.shape}")
            if values.shape != expected_shape:
                raise SchemaMismatchError(
                    f"matrix '{name}' shape {values.shape} must match "
                    f"(n_features, n_samples) = {expected_shape}"
                )
            frozen[name] = _freeze(values)

        feature_annotation = self._check_annotation(feature_annotation, feature_ids, 'feature_annotation')
        sample_annotation = self._check_annotation(sample_annotation, sample_ids, 'sample_annotation')
        protocol_annotation = self._check_annotation(protocol_annotation, sample_ids, 'protocol_annotation')

        overlap = sample_annotation.columns.intersection(protocol_annotation.columns)
        if len(overlap):
            raise SchemaMismatchError(
                f"Columns present in both sample and protocol annotation: {list(overlap)}"
            )

        if len(dim_labels) != 2:
            raise ValueError(f"dim_labels must be a (feature, sample) pair, got {dim_labels!r}")

        # Private attributes (immutability by convention, matrices read-only)
        self._assays = frozen
        self._feature_ids = feature_ids
        self._sample_ids = sample_ids
        self._feature_annotation = feature_annotation
        self._sample_annotation = sample_annotation
        self._protocol_annotation = protocol_annotation
        self._experiment = dict(experiment or {})
        self._dim_labels = (str(dim_labels[0]), str(dim_labels[1]))

    @staticmethod
    def _check_annotation(frame: Optional[pd.DataFrame], ids: pd.Index, what: str) -> pd.DataFrame:
        if frame is None:
            return pd.DataFrame(index=ids.copy())
        if not isinstance(frame, pd.DataFrame):
            raise TypeError(f"{what} must be pd.DataFrame, got {type(frame)}")
        if not frame.index.equals(ids):
            raise SchemaMismatchError(describe_key_mismatch(ids, frame.index, what))
        return frame.copy()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def assay_names(self) -> list[str]:
        """Names of the stored matrices, in insertion order."""
        return list(self._assays)

    @property
    def feature_ids(self) -> pd.Index:
        """Row identifiers (probes)."""
        return self._feature_ids

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers (segments)."""
        return self._sample_ids

    @property
    def feature_annotation(self) -> pd.DataFrame:
        """Per-feature metadata (copy)."""
        return self._feature_annotation.copy()

    @property
    def sample_annotation(self) -> pd.DataFrame:
        """Per-sample biological annotations (copy)."""
        return self._sample_annotation.copy()

    @property
    def protocol_annotation(self) -> pd.DataFrame:
        """Per-sample run metadata (copy)."""
        return self._protocol_annotation.copy()

    @property
    def experiment(self) -> dict[str, Any]:
        return dict(self._experiment)

    @property
    def dim_labels(self) -> tuple[str, str]:
        """(feature field, sample field) used for display labels."""
        return self._dim_labels

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return (len(self._feature_ids), len(self._sample_ids))

    @property
    def n_features(self) -> int:
        return len(self._feature_ids)

    @property
    def n_samples(self) -> int:
        return len(self._sample_ids)

    def get_matrix(self, name: str = RAW_ASSAY) -> np.ndarray:
        """
        Return the named matrix as a read-only array (features × samples).

        Raises:
            NotFoundError: If no matrix has that name

        Examples:
            >>> raw = store.get_matrix("raw")
            >>> raw.flags.writeable
            False
        """
        try:
            return self._assays[name]
        except KeyError:
            raise NotFoundError(
                f"No matrix named '{name}'. Available: {self.assay_names}"
            ) from None

    def get_frame(self, name: str = RAW_ASSAY) -> pd.DataFrame:
        """Return the named matrix as a labelled (writable) DataFrame copy."""
        return pd.DataFrame(
            self.get_matrix(name),
            index=self._feature_ids.copy(),
            columns=self._sample_ids.copy(),
            copy=True,
        )

    def ids(self, axis: Axis | str) -> pd.Index:
        """Identifiers along an axis."""
        axis = Axis.coerce(axis)
        return self._feature_ids if axis is Axis.FEATURES else self._sample_ids

    def sample_data(self) -> pd.DataFrame:
        """Sample annotation and protocol annotation side by side."""
        return pd.concat([self._sample_annotation, self._protocol_annotation], axis=1)

    def annotation(self, axis: Axis | str) -> pd.DataFrame:
        """Annotation table for an axis (samples include protocol columns)."""
        axis = Axis.coerce(axis)
        if axis is Axis.FEATURES:
            return self.feature_annotation
        return self.sample_data()

    def get_annotation(self, axis: Axis | str, field: str) -> pd.Series:
        """
        Return one annotation field as a Series indexed by the axis IDs.

        Sample fields are looked up in the sample annotation first and then in
        the protocol annotation.

        Raises:
            NotFoundError: If the field is absent
        """
        axis = Axis.coerce(axis)
        if axis is Axis.FEATURES:
            tables = [self._feature_annotation]
        else:
            tables = [self._sample_annotation, self._protocol_annotation]
        for table in tables:
            if field in table.columns:
                return table[field].copy()
        available = [c for t in tables for c in t.columns]
        raise NotFoundError(
            f"No {axis.value[:-1]} annotation field '{field}'. Available: {available}"
        )

    def feature_labels(self) -> pd.Series:
        """Display labels for features (dim_labels[0] field, else the IDs)."""
        return self._labels(Axis.FEATURES, self._dim_labels[0])

    def sample_labels(self) -> pd.Series:
        """Display labels for samples (dim_labels[1] field, else the IDs)."""
        return self._labels(Axis.SAMPLES, self._dim_labels[1])

    def _labels(self, axis: Axis, field: str) -> pd.Series:
        try:
            return self.get_annotation(axis, field)
        except NotFoundError:
            ids = self.ids(axis)
            return pd.Series(ids, index=ids, name=field)

    # ------------------------------------------------------------------
    # Derived stores
    # ------------------------------------------------------------------

    def _replace(self, **changes: Any) -> AnnotatedMatrixStore:
        fields = dict(
            assays=self._assays,
            feature_ids=self._feature_ids,
            sample_ids=self._sample_ids,
            feature_annotation=self._feature_annotation,
            sample_annotation=self._sample_annotation,
            protocol_annotation=self._protocol_annotation,
            experiment=self._experiment,
            dim_labels=self._dim_labels,
        )
        fields.update(changes)
        return AnnotatedMatrixStore(**fields)

    def with_assay(
        self,
        name: str,
        matrix: np.ndarray | pd.DataFrame,
        overwrite: bool = False,
    ) -> AnnotatedMatrixStore:
        """
        Return a new store with an additional (derived) matrix.

        Args:
            name: Name of the new matrix (e.g. "q_norm")
            matrix: Array in store order, or DataFrame labelled with the
                store's feature/sample IDs (re-ordered to store order)
            overwrite: Replace an existing matrix with the same name

        Raises:
            ValueError: If the name is taken and overwrite is False
            SchemaMismatchError: If shape or labels disagree with the store

        Examples:
            >>> raw = store.get_matrix("raw")
            >>> scaled = store.with_assay("cpm", raw / raw.sum(axis=0) * 1e6)
            >>> scaled.assay_names
            ['raw', 'cpm']
        """
        if name in self._assays and not overwrite:
            raise ValueError(f"Matrix '{name}' already exists (pass overwrite=True to replace)")

        if isinstance(matrix, pd.DataFrame):
            if not (matrix.index.sort_values().equals(self._feature_ids.sort_values())):
                raise SchemaMismatchError(describe_key_mismatch(self._feature_ids, matrix.index, f"matrix '{name}' rows"))
            if not (matrix.columns.sort_values().equals(self._sample_ids.sort_values())):
                raise SchemaMismatchError(describe_key_mismatch(self._sample_ids, matrix.columns, f"matrix '{name}' columns"))
            matrix = matrix.loc[self._feature_ids, self._sample_ids].to_numpy()

        assays = dict(self._assays)
        assays[name] = matrix
        return self._replace(assays=assays)

    def _positions(self, axis: Axis, predicate: Predicate) -> np.ndarray:
        """Resolve a predicate into sorted integer positions along an axis."""
        ids = self.ids(axis)
        n = len(ids)

        if predicate is None:
            return np.arange(n)

        if isinstance(predicate, slice):
            return np.sort(np.arange(n)[predicate])

        if callable(predicate):
            predicate = predicate(self.annotation(axis))

        if isinstance(predicate, pd.Series):
            if _is_boolean_series(predicate):
                predicate = predicate.fillna(False).astype(bool)
                if not predicate.index.equals(ids) and predicate.index.is_unique:
                    # Labelled mask: align on IDs when one index covers the other
                    if predicate.index.isin(ids).all():
                        predicate = predicate.reindex(ids, fill_value=False)
                    elif ids.isin(predicate.index).all():
                        predicate = predicate.reindex(ids)
            predicate = predicate.to_numpy()

        if isinstance(predicate, (str, bytes)):
            predicate = [predicate]

        values = np.asarray(list(predicate) if not isinstance(predicate, np.ndarray) else predicate)

        if values.dtype == bool:
            if len(values) != n:
                raise ValueError(
                    f"mask length ({len(values)}) must match n_{axis.value} ({n})"
                )
            return np.flatnonzero(values)

        # Collection of IDs: keep store order, drop repeats
        wanted = pd.Index(values)
        positions = ids.get_indexer(wanted)
        if (positions < 0).any():
            unknown = list(wanted[positions < 0][:5])
            raise NotFoundError(f"Unknown {axis.value[:-1]} IDs: {unknown}")
        return np.unique(positions)

    def _take(self, feature_pos: np.ndarray, sample_pos: np.ndarray) -> AnnotatedMatrixStore:
        index = np.ix_(feature_pos, sample_pos)
        return self._replace(
            assays={name: values[index] for name, values in self._assays.items()},
            feature_ids=self._feature_ids[feature_pos],
            sample_ids=self._sample_ids[sample_pos],
            feature_annotation=self._feature_annotation.iloc[feature_pos],
            sample_annotation=self._sample_annotation.iloc[sample_pos],
            protocol_annotation=self._protocol_annotation.iloc[sample_pos],
        )

    def subset(self, features: Predicate = None, samples: Predicate = None) -> AnnotatedMatrixStore:
        """
        Subset rows and/or columns, slicing every matrix and annotation table.

        Each predicate may be:
            - None: keep everything on that axis
            - a boolean mask: an array of the axis length, or a Series
              labelled by IDs (aligned on the store IDs; missing values
              count as False)
            - a callable receiving the axis annotation table (samples include
              protocol columns) and returning a boolean mask
            - a collection of IDs (kept in store order)
            - a slice of positions (kept in store order)

        Returns:
            New store; the original is unchanged

        Raises:
            ValueError: If a mask has the wrong length
            NotFoundError: If an ID is not in the store, or a callable
                references an absent field

        Examples:
            >>> tumour = store.subset(samples=lambda s: s["segment"] == "Tumor")
            >>> endogenous = store.subset(features=lambda f: ~f["Negative"])
            >>> both = store.subset(features=["RTS001", "RTS003"], samples=["A"])
        """
        try:
            feature_pos = self._positions(Axis.FEATURES, features)
            sample_pos = self._positions(Axis.SAMPLES, samples)
        except KeyError as e:
            if isinstance(e, NotFoundError):
                raise
            raise NotFoundError(f"Annotation field not found: {e}") from e
        return self._take(feature_pos, sample_pos)

    def select_features(self, mask: Predicate) -> AnnotatedMatrixStore:
        """Subset by features (rows)."""
        return self.subset(features=mask)

    def select_samples(self, mask: Predicate) -> AnnotatedMatrixStore:
        """Subset by samples (columns)."""
        return self.subset(samples=mask)

    def __getitem__(self, key: Any) -> AnnotatedMatrixStore:
        """``store[features, samples]`` shorthand for :meth:`subset`."""
        if isinstance(key, tuple):
            if len(key) != 2:
                raise IndexError("Use store[features, samples]")
            features, samples = key
        else:
            features, samples = key, None
        if isinstance(features, slice) and features == slice(None):
            features = None
        if isinstance(samples, slice) and samples == slice(None):
            samples = None
        return self.subset(features=features, samples=samples)

    # ------------------------------------------------------------------
    # Group-wise / element-wise application
    # ------------------------------------------------------------------

    def _partition(self, axis: Axis, field: str) -> dict[Any, np.ndarray]:
        values = self.get_annotation(axis, field).tolist()
        groups: dict[Any, list[int]] = {}
        for position, value in enumerate(values):
            key = None if _is_missing(value) else value
            try:
                hash(key)
            except TypeError:
                raise TypeError(
                    f"Field '{field}' holds unhashable values ({type(key).__name__}); "
                    "use expand_annotation() before grouping"
                ) from None
            groups.setdefault(key, []).append(position)
        return {key: np.asarray(pos, dtype=int) for key, pos in groups.items()}

    def group_by(self, axis: Axis | str, field: str) -> dict[Any, AnnotatedMatrixStore]:
        """
        Split the store by an annotation field.

        Returns:
            Mapping of group value -> sub-store. Missing values form a group
            keyed by None. Groups appear in first-appearance order.
        """
        axis = Axis.coerce(axis)
        everything = np.arange(len(self.ids(axis.other)))
        result = {}
        for key, positions in self._partition(axis, field).items():
            if axis is Axis.FEATURES:
                result[key] = self._take(positions, everything)
            else:
                result[key] = self._take(everything, positions)
        return result

    def group_apply(
        self,
        axis: Axis | str,
        field: str,
        func: Callable[[np.ndarray], Any],
        assay: str = RAW_ASSAY,
    ) -> dict[Any, Any]:
        """
        Partition rows or columns by an annotation field and aggregate each part.

        ``func`` receives the 2-D slice of the named matrix belonging to one
        group (all features × the group's samples for ``axis="samples"``; the
        group's features × all samples for ``axis="features"``). Within a
        slice, keys keep their original order.

        Args:
            axis: Which dimension to partition
            field: Annotation field to group by
            func: Aggregation applied to each slice
            assay: Matrix name

        Returns:
            Mapping of group value -> func(slice). Every key of the axis lands
            in exactly one group; missing field values are grouped under None.

        Raises:
            NotFoundError: If the matrix or the field is absent
            TypeError: If the field holds unhashable (list) values

        Examples:
            >>> store.group_apply("samples", "group", np.mean)
            {'X': 3.0, 'Y': 4.0}
            >>> # Per-feature means within each tissue
            >>> store.group_apply("samples", "tissue", lambda m: m.mean(axis=1))
        """
        axis = Axis.coerce(axis)
        matrix = self.get_matrix(assay)
        result = {}
        for key, positions in self._partition(axis, field).items():
            part = matrix[:, positions] if axis is Axis.SAMPLES else matrix[positions, :]
            result[key] = func(part)
        return result

    def element_apply(
        self,
        axis: Axis | str,
        func: Callable[[np.ndarray], Any],
        assay: str = RAW_ASSAY,
    ) -> pd.Series:
        """
        Apply ``func`` to every row (features) or column (samples) of a matrix.

        Returns:
            Series of results indexed by the axis IDs, in store order

        Examples:
            >>> store.element_apply("features", np.mean)      # per-probe mean
            >>> store.element_apply("samples", np.sum, "raw")  # library sizes
        """
        axis = Axis.coerce(axis)
        matrix = self.get_matrix(assay)
        if axis is Axis.FEATURES:
            results = [func(matrix[i, :]) for i in range(matrix.shape[0])]
        else:
            results = [func(matrix[:, j]) for j in range(matrix.shape[1])]
        return pd.Series(results, index=self.ids(axis), dtype=None if results else float)

    def expand_annotation(self, axis: Axis | str, field: str, sep: Optional[str] = None) -> pd.DataFrame:
        """
        Expand a list-valued annotation field into one row per value.

        List values (e.g. a probe's GeneID list) produce one row per element;
        with ``sep`` set, string values are split on it first. IDs whose
        value is missing or empty keep one row with a missing value.

        Returns:
            Long-form DataFrame with columns [<axis>_id, field]
        """
        axis = Axis.coerce(axis)
        values = self.get_annotation(axis, field)
        if sep is not None:
            values = values.map(lambda v: v.split(sep) if isinstance(v, str) else v)
        id_column = 'feature_id' if axis is Axis.FEATURES else 'sample_id'
        exploded = values.explode()
        return pd.DataFrame({id_column: exploded.index.to_numpy(), field: exploded.to_numpy()})

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def copy(self, deep: bool = True) -> AnnotatedMatrixStore:
        """
        Create a copy of this store.

        Matrices are read-only and shared unless ``deep`` is True.
        """
        if not deep:
            return self._replace()
        return self._replace(
            assays={name: values.copy() for name, values in self._assays.items()},
            feature_ids=self._feature_ids.copy(),
            sample_ids=self._sample_ids.copy(),
        )

    def equals(self, other: object) -> bool:
        """True if both stores hold identical matrices, keys and annotations."""
        if not isinstance(other, AnnotatedMatrixStore):
            return False
        if self.assay_names != other.assay_names:
            return False
        if not (self._feature_ids.equals(other._feature_ids) and self._sample_ids.equals(other._sample_ids)):
            return False
        for name, values in self._assays.items():
            if not np.array_equal(values, other._assays[name], equal_nan=True):
                return False
        return (
            self._feature_annotation.equals(other._feature_annotation)
            and self._sample_annotation.equals(other._sample_annotation)
            and self._protocol_annotation.equals(other._protocol_annotation)
            and self._experiment == other._experiment
            and self._dim_labels == other._dim_labels
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        def _span(ids: pd.Index) -> str:
            if len(ids) == 0:
                return "(none)"
            return f"{ids[0]}...{ids[-1]}"

        return (
            f"AnnotatedMatrixStore({self.n_features} features × {self.n_samples} samples)\n"
            f"  Matrices: {self.assay_names}\n"
            f"  Features: {_span(self._feature_ids)}\n"
            f"  Samples: {_span(self._sample_ids)}\n"
            f"  Feature fields: {list(self._feature_annotation.columns)}\n"
            f"  Sample fields: {list(self._sample_annotation.columns)}\n"
            f"  Protocol fields: {list(self._protocol_annotation.columns)}"
        )
