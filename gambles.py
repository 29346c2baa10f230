import numpy as np
import pandas as pd

# ------------------------------------------------------------
# Condition table layout
# ------------------------------------------------------------
OUTCOME_COLUMNS = ["win1", "loss1", "win2", "loss2"]
RESPONSE_COLUMNS = ["n_aa", "n_ad", "n_da", "n_dd"]
CONDITION_COLUMNS = OUTCOME_COLUMNS + ["won_first", "n"] + RESPONSE_COLUMNS


# ------------------------------------------------------------
# Utility functions
# ------------------------------------------------------------
def get_utility(v, alpha, lam):
    """
    Reference-dependent power utility with loss aversion.

    v**alpha for gains (and 0), -lam * |v|**alpha for losses.
    """
    if v < 0:
        return -lam * abs(v) ** alpha
    return v ** alpha


def check_outcomes(outcomes, name="outcomes"):
    """Return outcomes as a float array of length 2 ([win, loss])."""
    arr = np.asarray(outcomes, dtype=float)
    if arr.shape != (2,):
        raise ValueError(f"{name} must have exactly 2 elements [win, loss], got shape {arr.shape}.")
    return arr


def get_expected_utility(model, vals):
    """
    Weighted utility of a two-outcome gamble.

    Parameters
    ----------
    model : QDIM
        Supplies alpha, lam and the decision weight w1.
    vals : sequence of float
        The two possible payoffs; w1 weights the first, 1 - w1 the second.

    Returns
    -------
    float
    """
    vals = check_outcomes(vals, "vals")
    utils = np.array([get_utility(v, model.alpha, model.lam) for v in vals])
    w = np.array([model.w1, 1.0 - model.w1])
    return float(utils @ w)


def get_utility_diffs(model, outcomes1, outcomes2):
    """
    Utility advantage of accepting the second gamble.

    The second gamble is evaluated on the combined payoff: each first-stage
    outcome x1 shifts both second-stage outcomes (outcomes2 + x1). The
    advantage is the expected utility of that combined gamble minus the
    utility of stopping with x1.

    Parameters
    ----------
    model : QDIM
    outcomes1 : sequence of float
        [win, loss] of the first gamble.
    outcomes2 : sequence of float
        [win, loss] of the second gamble.

    Returns
    -------
    np.ndarray
        [d_win, d_loss]: advantage given the first outcome of outcomes1
        occurred (the win) and given the second (the loss).
    """
    outcomes1 = check_outcomes(outcomes1, "outcomes1")
    outcomes2 = check_outcomes(outcomes2, "outcomes2")

    u1 = np.array([get_utility(x1, model.alpha, model.lam) for x1 in outcomes1])
    u2 = np.array([get_expected_utility(model, outcomes2 + x1) for x1 in outcomes1])
    return u2 - u1


# ------------------------------------------------------------
# Response-frequency tables
# ------------------------------------------------------------
def check_counts(data, n):
    """Return data as an int array of 4 non-negative counts summing to n."""
    arr = np.asarray(data)
    if arr.shape != (4,):
        raise ValueError(f"data must have exactly 4 response counts, got shape {arr.shape}.")
    if np.any(arr < 0):
        raise ValueError(f"Response counts must be non-negative, got {arr.tolist()}.")
    if np.any(arr != np.round(arr)):
        raise ValueError(f"Response counts must be integers, got {arr.tolist()}.")
    arr = arr.astype(int)
    if arr.sum() != n:
        raise ValueError(f"Response counts sum to {arr.sum()}, expected n={n}.")
    return arr


def conditions_to_frame(outcomes1, outcomes2, won_first, n, data):
    """
    Build a condition table from parallel per-condition sequences.

    Parameters
    ----------
    outcomes1, outcomes2 : sequence of [win, loss]
    won_first : sequence of bool
    n : sequence of int
    data : sequence of 4-vectors of counts

    Returns
    -------
    pd.DataFrame
        One row per condition with CONDITION_COLUMNS.
    """
    lengths = {len(outcomes1), len(outcomes2), len(won_first), len(n), len(data)}
    if len(lengths) != 1:
        raise ValueError(
            "outcomes1, outcomes2, won_first, n and data must have equal length, got "
            f"{[len(outcomes1), len(outcomes2), len(won_first), len(n), len(data)]}."
        )

    rows = []
    for o1, o2, wf, ni, d in zip(outcomes1, outcomes2, won_first, n, data):
        o1 = check_outcomes(o1, "outcomes1")
        o2 = check_outcomes(o2, "outcomes2")
        counts = check_counts(d, int(ni))
        rows.append([o1[0], o1[1], o2[0], o2[1], bool(wf), int(ni)] + counts.tolist())
    return pd.DataFrame(rows, columns=CONDITION_COLUMNS)


def frame_to_conditions(df: pd.DataFrame):
    """
    Split a condition table back into parallel sequences.

    Returns
    -------
    (outcomes1, outcomes2, won_first, n, data) : tuple of lists
    """
    missing = [c for c in CONDITION_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Condition table is missing columns: {missing}")

    outcomes1 = df[["win1", "loss1"]].to_numpy(dtype=float).tolist()
    outcomes2 = df[["win2", "loss2"]].to_numpy(dtype=float).tolist()
    won_first = df["won_first"].astype(bool).tolist()
    n = df["n"].astype(int).tolist()
    data = df[RESPONSE_COLUMNS].to_numpy(dtype=int).tolist()
    return outcomes1, outcomes2, won_first, n, data


def load_conditions(path: str, sep: str = "\t") -> pd.DataFrame:
    """
    Load a tab separated condition table and validate every row.

    The won_first column accepts booleans or 0/1 and the usual true/false
    spellings.
    """
    df = pd.read_csv(path, sep=sep)
    missing = [c for c in CONDITION_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")

    if df["won_first"].dtype == object:
        flags = df["won_first"].astype(str).str.strip().str.lower()
        df["won_first"] = flags.map({"true": True, "1": True, "false": False, "0": False})
        if df["won_first"].isna().any():
            raise ValueError(f"{path}: won_first must be boolean.")

    # round trip through conditions_to_frame for validation
    return conditions_to_frame(*frame_to_conditions(df))


def save_conditions(df: pd.DataFrame, out_path: str, sep: str = "\t"):
    """Write a condition table (tab separated by default)."""
    df[CONDITION_COLUMNS].to_csv(out_path, sep=sep, index=False)
