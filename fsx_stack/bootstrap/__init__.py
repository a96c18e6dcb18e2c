"""Boot script steps and their composition into instance user data."""

from fsx_stack.bootstrap.script import MOUNT_PATH, UserData, compose_boot_script
from fsx_stack.bootstrap.steps import (
    ClientInstall,
    Finalize,
    FinalizeMode,
    FstabEntry,
    LustreTuning,
    MountDirectory,
    PackageUpdate,
    Step,
    StrictMode,
    WriteFile,
)

__all__ = [
    "MOUNT_PATH",
    "UserData",
    "compose_boot_script",
    # Steps
    "Step",
    "StrictMode",
    "PackageUpdate",
    "ClientInstall",
    "MountDirectory",
    "FstabEntry",
    "WriteFile",
    "LustreTuning",
    "Finalize",
    "FinalizeMode",
]
