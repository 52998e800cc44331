"""
Host description -> inference runtime selection.
- Sizes are in GiB.
"""

from ..errors import ModelLoadError

# Below this the model and a long input do not fit comfortably.
MIN_RAM_GIB = 2.0


def pick_runtime(hw: dict) -> dict:
    """
    hw: {"providers": [...], "gpu_cuda": bool, "cpu_physical_cores": int, "ram_gib": float, ...}
    returns: {"providers": [...], "intra_op_threads": int | None}
    """
    available = list(hw.get("providers") or [])
    ram = float(hw.get("ram_gib", 0.0))
    physical = hw.get("cpu_physical_cores") or hw.get("cpu_logical_cores")

    if "CUDAExecutionProvider" in available:
        providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]
    elif "CoreMLExecutionProvider" in available:
        providers = ["CoreMLExecutionProvider", "CPUExecutionProvider"]
    else:
        if ram and ram < MIN_RAM_GIB:
            raise ModelLoadError(f"Low RAM ({ram:.1f} GiB detected); minimum {MIN_RAM_GIB:.0f} GiB required")
        providers = ["CPUExecutionProvider"]

    # Leave thread count to the runtime when the core count is unknown.
    intra_op_threads = int(physical) if physical else None

    return {
        "providers": providers,
        "intra_op_threads": intra_op_threads,
    }
