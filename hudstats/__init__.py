"""CPU, amdgpu, battery and gamepad statistics from Linux procfs and sysfs, and HUD message formats."""

__version__ = "0.1.0"

__all__ = ["amdgpu", "battery", "cpu", "gamepad", "ipc_messages"]