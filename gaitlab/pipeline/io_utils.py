from __future__ import annotations
import io, math, re
from typing import Any, Dict, List, Mapping, Optional, Sequence
import numpy as np
import pandas as pd
from ..config.constants import TIME_NS_CANDS, TIME_S_CANDS, ACC, GYR, MAG, PRESSURE
from .samples import SensorSample, samples_from_arrays

__all__ = [
    "sanitize_cols",
    "pick_col",
    "read_samples_bytes",
    "read_frame_bytes",
    "samples_from_frame",
    "samples_to_frame",
    "to_json_safe",
    "raw_bundle",
    "segments_to_payload",
    "segments_from_payload",
]

_PAYLOAD_AXES = ("X", "Y", "Z")


def sanitize_cols(cols):
    sc = []
    for c in cols:
        s = str(c).strip()
        # camelCase -> snake_case so "accX" and "acc_x" meet
        s = re.sub(r"([a-z])([A-Z])", r"\1_\2", s)
        s = re.sub(r"[^0-9A-Za-z]+", "_", s)
        s = re.sub(r"_+", "_", s)
        sc.append(s.strip("_").lower())
    return sc


def pick_col(df: pd.DataFrame, candidates: list[str], required: bool = True) -> Optional[str]:
    """First exact candidate match, else a letters-only substring match.

    Substring matching only uses candidate tokens of four letters or more.
    """
    for c in candidates:
        if c in df.columns:
            return c
    base = ["".join(filter(str.isalpha, str(c))) for c in df.columns]
    for c in candidates:
        token = "".join(filter(str.isalpha, c))
        if len(token) < 4:
            continue
        for bidx, b in enumerate(base):
            if token in b:
                return df.columns[bidx]
    if required:
        raise KeyError(f"Missing any of {candidates}")
    return None


def read_frame_bytes(b: bytes) -> pd.DataFrame:
    text = b.decode("utf-8", errors="ignore")
    if not text.strip():
        raise ValueError("Empty CSV payload")
    df = None
    try:
        df = pd.read_csv(io.StringIO(text), low_memory=False)
    except (pd.errors.ParserError, UnicodeDecodeError):
        df = None
    if df is None or df.shape[1] < 2:
        # Semicolon / tab exports
        df = pd.read_csv(io.StringIO(text), engine="python", sep=None, on_bad_lines="skip")
    df.columns = sanitize_cols(df.columns)
    return df


def _time_to_ns(t: np.ndarray) -> np.ndarray:
    """Timestamps in s, ms, us or ns -> int64 ns, judged from the median step."""
    t = np.asarray(t, dtype=float)
    if t.size < 2:
        return t.astype(np.int64)
    dt = np.diff(t)
    dt = dt[np.isfinite(dt) & (dt > 0)]
    step = float(np.median(dt)) if dt.size else 1e7
    if step < 1.0:
        scale = 1e9
    elif step < 1e3:
        scale = 1e6
    elif step < 1e6:
        scale = 1e3
    else:
        scale = 1.0
    return np.round(t * scale).astype(np.int64)


def samples_from_frame(df: pd.DataFrame) -> List[SensorSample]:
    """DataFrame with sanitized column names -> samples.

    acc and gyro are required; mag and pressure default to zero when absent.
    Rows with non-finite required values are dropped.
    """
    try:
        t_col = pick_col(df, TIME_NS_CANDS, required=False) or pick_col(df, TIME_S_CANDS)
        acc_cols = [pick_col(df, ACC[a]) for a in "xyz"]
        gyr_cols = [pick_col(df, GYR[a]) for a in "xyz"]
    except KeyError as exc:
        raise ValueError(f"CSV is missing a required column: {exc.args[0]}") from exc
    mag_cols = [pick_col(df, MAG[a], required=False) for a in "xyz"]
    p_col = pick_col(df, PRESSURE, required=False)

    num = df.apply(pd.to_numeric, errors="coerce")
    keep = num[[t_col, *acc_cols, *gyr_cols]].notna().all(axis=1)
    num = num.loc[keep]
    n = len(num)
    mag = (
        num[mag_cols].fillna(0.0).to_numpy(dtype=float)
        if all(c is not None for c in mag_cols) else np.zeros((n, 3))
    )
    pressure = num[p_col].fillna(0.0).to_numpy(dtype=float) if p_col is not None else None
    return samples_from_arrays(
        _time_to_ns(num[t_col].to_numpy(dtype=float)),
        num[acc_cols].to_numpy(dtype=float),
        num[gyr_cols].to_numpy(dtype=float),
        mag,
        pressure,
    )


def read_samples_bytes(b: bytes) -> List[SensorSample]:
    return samples_from_frame(read_frame_bytes(b))


def samples_to_frame(samples: Sequence[SensorSample]) -> pd.DataFrame:
    """Inverse of samples_from_frame using canonical column names."""
    rows = []
    for s in samples:
        rows.append([s.timestamp_nanos, *s.acc, *s.gyro, *s.mag, s.pressure])
    cols = [
        "timestamp_ns",
        "acc_x", "acc_y", "acc_z",
        "gyro_x", "gyro_y", "gyro_z",
        "mag_x", "mag_y", "mag_z",
        "pressure",
    ]
    df = pd.DataFrame(rows, columns=cols)
    return df.astype({"timestamp_ns": "int64"})


def to_json_safe(obj: Any):
    """numpy containers/scalars -> plain Python; non-finite floats -> None."""
    if isinstance(obj, np.ndarray):
        return to_json_safe(obj.tolist())
    if isinstance(obj, np.generic):
        return to_json_safe(obj.item())
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    if isinstance(obj, dict):
        return {k: to_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_safe(x) for x in obj]
    return obj


def raw_bundle(metrics) -> Dict[str, list]:
    """Presentation series of one LegMetrics as plain lists."""
    return {
        "flexion": to_json_safe(metrics.raw_flexion_angles),
        "abduction": to_json_safe(metrics.raw_abduction_angles),
        "cycle_times": to_json_safe(metrics.raw_gait_cycles),
        "step_lengths": to_json_safe(metrics.raw_step_lengths),
        "timestamps": to_json_safe(metrics.raw_timestamps),
    }


def _sample_to_packet(s: SensorSample) -> Dict[str, Any]:
    pkt: Dict[str, Any] = {"timestamp": int(s.timestamp_nanos)}
    for prefix, vec in (("acc", s.acc), ("gyro", s.gyro), ("mag", s.mag)):
        for ax, v in zip(_PAYLOAD_AXES, vec):
            pkt[f"{prefix}{ax}"] = float(v)
    pkt["pressure"] = float(s.pressure)
    return pkt


def _packet_to_sample(pkt: Mapping[str, Any]) -> SensorSample:
    def vec(prefix: str, required: bool):
        keys = [f"{prefix}{ax}" for ax in _PAYLOAD_AXES]
        if not all(k in pkt for k in keys):
            if required:
                raise ValueError(f"sample packet is missing {prefix}X/Y/Z")
            return (0.0, 0.0, 0.0)
        return tuple(float(pkt[k]) for k in keys)

    if "timestamp" not in pkt:
        raise ValueError("sample packet is missing 'timestamp'")
    return SensorSample(
        timestamp_nanos=int(pkt["timestamp"]),
        acc=vec("acc", True),
        gyro=vec("gyro", True),
        mag=vec("mag", False),
        pressure=float(pkt.get("pressure", 0.0)),
    )


def segments_to_payload(segments: Sequence[Sequence[SensorSample]]) -> Dict[str, Any]:
    """Walking segments as the paired-device transfer payload."""
    return {"segments": [[_sample_to_packet(s) for s in seg] for seg in segments]}


def segments_from_payload(payload: Mapping[str, Any]) -> List[List[SensorSample]]:
    segs = payload.get("segments")
    if not isinstance(segs, list):
        raise ValueError("payload must hold a 'segments' list")
    return [[_packet_to_sample(p) for p in seg] for seg in segs]
