import logging
import os

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)


# --- Sampling Schedules ---

def make_schedule(when):
    """Normalises a schedule: True/False, a predicate (model, s) -> bool, or an iterable of steps."""
    if when is None:
        return False
    if isinstance(when, bool) or callable(when):
        return when
    return frozenset(int(s) for s in when)


def should_collect(s, model, when):
    if isinstance(when, bool):
        return when
    if callable(when):
        return bool(when(model, s))
    return s in when


# --- Data Collection ---

def column_name(spec):
    return spec if isinstance(spec, str) else spec.__name__


def _value(obj, spec):
    value = getattr(obj, spec) if isinstance(spec, str) else spec(obj)
    if isinstance(value, np.ndarray):
        return value.copy()
    return value


class Recorder:
    """Accumulates rows of agent and model data and turns them into DataFrames."""

    def __init__(self, adata=(), mdata=()):
        self.adata = list(adata)
        self.mdata = list(mdata)
        self.agent_rows = []
        self.model_rows = []

    def collect_agents(self, model, s):
        if not self.adata:
            return
        for agent_id in sorted(model.agents):
            agent = model.agents[agent_id]
            row = {'step': s, 'id': agent_id}
            for spec in self.adata:
                row[column_name(spec)] = _value(agent, spec)
            self.agent_rows.append(row)

    def collect_model(self, model, s):
        if not self.mdata:
            return
        row = {'step': s}
        for spec in self.mdata:
            row[column_name(spec)] = _value(model, spec)
        self.model_rows.append(row)

    def agent_frame(self):
        columns = ['step', 'id'] + [column_name(spec) for spec in self.adata] if self.adata else []
        return pd.DataFrame(self.agent_rows, columns=columns)

    def model_frame(self):
        columns = ['step'] + [column_name(spec) for spec in self.mdata] if self.mdata else []
        return pd.DataFrame(self.model_rows, columns=columns)


# --- Persistence ---

def _column_array(column):
    values = column.to_list()
    if values and isinstance(values[0], np.ndarray):
        try:
            return np.stack(values)
        except ValueError:
            # ragged entries
            return np.array(values, dtype=object)
    return np.asarray(values)


def save_data_npz(adf, mdf, output_dir, name):
    """Saves recorded agent and model data to a compressed NPZ file; returns its path.

    Columns are stored as `agent_<column>` and `model_<column>`. Columns whose
    entries are arrays of different lengths are stored as object arrays, which
    `np.load` only reads back with `allow_pickle=True`.
    """
    if not os.path.exists(output_dir):
        os.makedirs(output_dir)
    arrays = {f'agent_{col}': _column_array(adf[col]) for col in adf.columns}
    arrays.update({f'model_{col}': _column_array(mdf[col]) for col in mdf.columns})
    filepath = os.path.join(output_dir, f'{name}_data.npz')
    np.savez_compressed(filepath, **arrays)
    log.info("Saved %d agent rows and %d model rows to %s", len(adf), len(mdf), filepath)
    return filepath
