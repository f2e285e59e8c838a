#!/usr/bin/python3
# -*- coding: utf-8 -*-

"""
    pyEOSToolbox - Helmholtz Energy Equations of State and Phase Equilibria
              Copyright (C) 2026, the pyEOSToolbox developers

    This program is free software: you can redistribute it and/or modify
    it under the terms of the GNU General Public License as published by
    the Free Software Foundation, either version 3 of the License, or
    (at your option) any later version.

    This program is distributed in the hope that it will be useful,
    but WITHOUT ANY WARRANTY; without even the implied warranty of
    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
    GNU General Public License for more details.

    The GNU General Public License can be found in the LICENSE directory,
    and at  <https://www.gnu.org/licenses/>.
"""
"""
Substance records and immutable parameter sets.

A parameter set holds an ordered tuple of PureRecord plus a square, symmetric
matrix of binary interaction parameters. Model specific parameter classes derive
from Parameters, set `model_record_cls` and compute their arrays in `_build`.

JSON layout (one file of pure records, optionally one of binary records):

    [{"identifier": {"cas": "74-98-6", "name": "propane"},
      "molarweight": 44.0962,
      "model_record": {"tc": 369.96, "pc": 4250000.0, "acentric_factor": 0.153},
      "ideal_gas_record": {"a": ..., "b": ..., "c": ..., "d": ..., "e": ...}}]

    [{"id1": {"cas": "74-98-6"}, "id2": {"cas": "106-97-8"}, "model_record": 0.01}]
"""

import json
import logging
from dataclasses import dataclass, fields
from typing import Optional, List, Sequence, Union

import numpy as np

from pyeostoolbox.classes import IdentifierOption
from pyeostoolbox.errors import ParameterError
from pyeostoolbox.validate import validate_methods

logger = logging.getLogger(__name__)


def _record_from_dict(cls, d, what: str):
    """ Builds a dataclass record from a dict, rejecting unknown or missing fields"""
    if not isinstance(d, dict):
        raise ParameterError(f"{what} must be a mapping, got {type(d).__name__}")
    names = {f.name for f in fields(cls)}
    unknown = set(d) - names
    if unknown:
        raise ParameterError(f"Unknown fields in {what}: {sorted(unknown)}")
    try:
        return cls(**d)
    except TypeError as e:
        raise ParameterError(f"Malformed {what}: {e}") from e


def _load_json(path):
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except OSError as e:
        raise ParameterError(f"Cannot read parameter file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ParameterError(f"Invalid JSON in parameter file {path}: {e}") from e


@dataclass(frozen=True)
class Identifier:
    """Substance identifiers. At least one field must be given."""
    cas: Optional[str] = None
    name: Optional[str] = None
    iupac_name: Optional[str] = None
    smiles: Optional[str] = None
    inchi: Optional[str] = None
    formula: Optional[str] = None

    def __post_init__(self):
        if all(getattr(self, f.name) is None for f in fields(self)):
            raise ParameterError("Identifier needs at least one field")

    def as_string(self, option: Union[str, IdentifierOption]) -> Optional[str]:
        option = validate_methods(['search_option'], [option])
        return getattr(self, option.name.lower())

    @classmethod
    def from_dict(cls, d):
        return _record_from_dict(cls, d, 'identifier')

    def __str__(self):
        parts = [f"{f.name}={getattr(self, f.name)}" for f in fields(self) if getattr(self, f.name) is not None]
        return f"Identifier({', '.join(parts)})"


@dataclass(frozen=True)
class JobackRecord:
    """Ideal gas heat capacity cp = a + bT + cT² + dT³ + eT⁴ in J/(mol·K)."""
    a: float
    b: float = 0.0
    c: float = 0.0
    d: float = 0.0
    e: float = 0.0

    @classmethod
    def from_dict(cls, d):
        record = _record_from_dict(cls, d, 'ideal_gas_record')
        try:
            coefs = [float(getattr(record, f.name)) for f in fields(cls)]
        except (TypeError, ValueError) as e:
            raise ParameterError(f"Non-numeric Joback coefficients: {record}") from e
        if not all(np.isfinite(coefs)):
            raise ParameterError(f"Non-finite Joback coefficients: {record}")
        return cls(*coefs)


@dataclass(frozen=True)
class PureRecord:
    identifier: Identifier
    molarweight: float  # g/mol
    model_record: object = None
    ideal_gas_record: Optional[JobackRecord] = None

    def __post_init__(self):
        if not (np.isfinite(self.molarweight) and self.molarweight > 0):
            raise ParameterError(f"Molar weight must be positive, got {self.molarweight} for {self.identifier}")

    @classmethod
    def from_dict(cls, d, model_record_cls=None):
        if not isinstance(d, dict):
            raise ParameterError(f"Pure record must be a mapping, got {type(d).__name__}")
        unknown = set(d) - {'identifier', 'molarweight', 'model_record', 'ideal_gas_record', 'chemical_record'}
        if unknown:
            raise ParameterError(f"Unknown fields in pure record: {sorted(unknown)}")
        if 'identifier' not in d or 'molarweight' not in d:
            raise ParameterError("Pure record requires 'identifier' and 'molarweight'")
        identifier = Identifier.from_dict(d['identifier'])
        model_record = d.get('model_record')
        if model_record is not None and model_record_cls is not None:
            model_record = model_record_cls.from_dict(model_record)
        ideal_gas_record = d.get('ideal_gas_record')
        if ideal_gas_record is not None:
            ideal_gas_record = JobackRecord.from_dict(ideal_gas_record)
        try:
            molarweight = float(d['molarweight'])
        except (TypeError, ValueError) as e:
            raise ParameterError(f"Malformed molarweight for {identifier}: {d['molarweight']}") from e
        return cls(identifier, molarweight, model_record, ideal_gas_record)


@dataclass(frozen=True)
class BinaryRecord:
    id1: Identifier
    id2: Identifier
    model_record: float

    @classmethod
    def from_dict(cls, d):
        if not isinstance(d, dict) or not {'id1', 'id2', 'model_record'} <= set(d):
            raise ParameterError("Binary record requires 'id1', 'id2' and 'model_record'")
        try:
            value = float(d['model_record'])
        except (TypeError, ValueError) as e:
            raise ParameterError(f"Malformed binary model record: {d['model_record']}") from e
        return cls(Identifier.from_dict(d['id1']), Identifier.from_dict(d['id2']), value)


class Parameters:
    """
    Immutable parameter set shared by equations of state and states.

    Args:
        pure_records: Sequence of PureRecord, one per component, in order
        binary: Optional (nc, nc) symmetric matrix of binary interaction parameters
    """
    model_record_cls = None

    def __init__(self, pure_records: Sequence[PureRecord], binary=None):
        pure_records = tuple(pure_records)
        if len(pure_records) == 0:
            raise ParameterError("At least one pure record is required")
        for r in pure_records:
            if not isinstance(r, PureRecord):
                raise ParameterError(f"Expected PureRecord, got {type(r).__name__}")
            if r.model_record is None:
                raise ParameterError(f"No model record for {r.identifier}")
            if self.model_record_cls is not None and not isinstance(r.model_record, self.model_record_cls):
                raise ParameterError(f"Model record of {r.identifier} must be {self.model_record_cls.__name__}")
        nc = len(pure_records)
        if binary is None:
            binary = np.zeros((nc, nc))
        else:
            try:
                binary = np.array(binary, dtype=float)
            except (TypeError, ValueError) as e:
                raise ParameterError(f"Binary interaction matrix must be numeric: {e}") from e
            if binary.shape != (nc, nc):
                raise ParameterError(f"Binary interaction matrix must have shape ({nc}, {nc}), got {binary.shape}")
            if not np.all(np.isfinite(binary)):
                raise ParameterError("Binary interaction matrix contains non-finite values")
            if not np.allclose(binary, binary.T, rtol=0.0, atol=1e-14):
                raise ParameterError("Binary interaction matrix must be symmetric")
        binary.flags.writeable = False
        self._pure_records = pure_records
        self._binary = binary
        self.molarweight = np.array([r.molarweight for r in pure_records])
        self.molarweight.flags.writeable = False
        self._build()

    def _build(self):
        pass

    @property
    def pure_records(self):
        return self._pure_records

    @property
    def binary_records(self):
        return self._binary

    @property
    def components(self) -> int:
        return len(self._pure_records)

    @property
    def identifiers(self) -> List[Identifier]:
        return [r.identifier for r in self._pure_records]

    @property
    def joback_records(self) -> List[Optional[JobackRecord]]:
        return [r.ideal_gas_record for r in self._pure_records]

    # Construction -----------------------------------------------------------
    @classmethod
    def from_records(cls, pure_records: Sequence[PureRecord], binary_records: Optional[Sequence[BinaryRecord]] = None,
                     search_option: Union[str, IdentifierOption] = 'cas'):
        """ Builds the parameter set, matching binary records to components by the chosen identifier"""
        pure_records = list(pure_records)
        if not binary_records:
            return cls(pure_records)
        search_option = validate_methods(['search_option'], [search_option])
        lookup = {}
        for br in binary_records:
            id1, id2 = br.id1.as_string(search_option), br.id2.as_string(search_option)
            lookup[(id1, id2)] = br.model_record
        nc = len(pure_records)
        binary = np.zeros((nc, nc))
        for i in range(nc):
            for j in range(i + 1, nc):
                id_i = pure_records[i].identifier.as_string(search_option)
                id_j = pure_records[j].identifier.as_string(search_option)
                k = lookup.get((id_i, id_j), lookup.get((id_j, id_i), 0.0))
                binary[i, j] = binary[j, i] = k
        return cls(pure_records, binary)

    @classmethod
    def from_dicts(cls, substances: Optional[Sequence[str]], pure_dicts, binary_dicts=None,
                   search_option: Union[str, IdentifierOption] = 'name'):
        """
        Builds the parameter set from lists of JSON-like dicts.

        Args:
            substances: Identifier strings selecting and ordering the components. None keeps every record
            pure_dicts: List of pure record dicts
            binary_dicts: Optional list of binary record dicts
            search_option: Identifier field to match against
        """
        search_option = validate_methods(['search_option'], [search_option])
        records = [PureRecord.from_dict(d, cls.model_record_cls) for d in pure_dicts]
        if substances is not None:
            substances = list(substances)
            if len(set(substances)) != len(substances):
                raise ParameterError(f"Duplicate substances requested: {substances}")
            by_id = {}
            for r in records:
                key = r.identifier.as_string(search_option)
                if key is not None and key not in by_id:
                    by_id[key] = r
            missing = [s for s in substances if s not in by_id]
            if missing:
                raise ParameterError(f"The following substances were not found: {', '.join(missing)}")
            records = [by_id[s] for s in substances]
        binary = None if binary_dicts is None else [BinaryRecord.from_dict(d) for d in binary_dicts]
        logger.debug("Loaded %d pure records (%s)", len(records), search_option.name.lower())
        return cls.from_records(records, binary, search_option)

    @classmethod
    def from_json(cls, substances: Optional[Sequence[str]], pure_path, binary_path=None,
                  search_option: Union[str, IdentifierOption] = 'name'):
        """ Reads pure (and optionally binary) records from JSON files"""
        pure_dicts = _load_json(pure_path)
        binary_dicts = None if binary_path is None else _load_json(binary_path)
        if not isinstance(pure_dicts, list):
            raise ParameterError(f"{pure_path} must contain a list of pure records")
        return cls.from_dicts(substances, pure_dicts, binary_dicts, search_option)

    def subset(self, component_list: Sequence[int]):
        """ New parameter set holding only the listed components, in the given order"""
        component_list = list(component_list)
        nc = self.components
        if any(not 0 <= i < nc for i in component_list) or len(set(component_list)) != len(component_list):
            raise ParameterError(f"Invalid component list {component_list} for {nc} components")
        records = [self._pure_records[i] for i in component_list]
        binary = self._binary[np.ix_(component_list, component_list)]
        return type(self)(records, binary)

    def __repr__(self):
        names = [str(r.identifier.name or r.identifier.cas) for r in self._pure_records]
        return f"{type(self).__name__}({', '.join(names)})"
