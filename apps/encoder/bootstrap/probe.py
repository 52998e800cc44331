"""
Hardware / OS / runtime detection helpers.
- RAM size, physical/logical CPU cores, OS information and the ONNX
  Runtime execution providers available on this host.
- All sizes are reported in GiB (2^30 bytes).
"""
import platform

import onnxruntime as ort
import psutil


def ram_gib() -> float:
    """Total system RAM in GiB, rounded to one decimal."""
    total_bytes = psutil.virtual_memory().total
    gib = total_bytes / (1024 ** 3)
    return round(gib, 1)


def cpu_info() -> dict:
    """
    CPU information:
    - cpu_physical_cores: physical core count
    - cpu_logical_cores: logical core count (including SMT)
    """
    return {
        "cpu_physical_cores": psutil.cpu_count(logical=False),
        "cpu_logical_cores": psutil.cpu_count(logical=True),
    }


def runtime_info() -> dict:
    """
    ONNX Runtime information:
    - ort_version: installed onnxruntime version
    - providers: execution providers compiled into this build
    - gpu_cuda: whether the CUDA provider is available
    """
    providers = list(ort.get_available_providers())
    return {
        "ort_version": ort.__version__,
        "providers": providers,
        "gpu_cuda": "CUDAExecutionProvider" in providers,
    }


def os_info() -> dict:
    """Operating system name and version."""
    return {
        "system": platform.system(),
        "release": platform.release(),
        "version": platform.version(),
    }


def detect_hardware() -> dict:
    """
    Merge all host information into one dict.
    Example:
    {
      "ort_version": "1.19.2",
      "providers": ["CUDAExecutionProvider", "CPUExecutionProvider"],
      "gpu_cuda": True,
      "cpu_logical_cores": 16,
      "cpu_physical_cores": 8,
      "ram_gib": 31.9,
      "os": {"system": "Linux", "release": "6.8.0", "version": "#1 SMP"}
    }
    """
    hw = {}

    # ONNX Runtime
    hw.update(runtime_info())

    # CPU
    hw.update(cpu_info())

    # RAM
    hw["ram_gib"] = ram_gib()

    # OS
    hw["os"] = os_info()

    return hw
