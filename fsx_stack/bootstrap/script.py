"""
Boot script composition.

A ``UserData`` is an ordered tuple of steps. ``compose_boot_script``
picks and orders the steps for an OS family and a variant's options, so
the full command sequence of every variant lives in one place.
"""

from dataclasses import dataclass

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
from fsx_stack.resources.base import Ref, Resolver
from fsx_stack.resources.compute import InstanceInit, OsFamily

SHEBANG = "#!/bin/bash"
MOUNT_PATH = "/mnt/fsx"


@dataclass(frozen=True)
class UserData:
    """Ordered boot script steps, rendered to a POSIX shell script."""

    steps: tuple[Step, ...] = ()

    def commands(self, resolve: Resolver = str) -> list[str]:
        lines = []
        for step in self.steps:
            lines.extend(step.commands(resolve))
        return lines

    def render(self, resolve: Resolver = str) -> str:
        """
        Render the script.

        Args:
            resolve: Turns ``Ref`` values into concrete strings. The default
                leaves ``${Id.attr}`` tokens in place.

        Returns:
            Script text, one command per line, with a trailing newline
        """
        return "\n".join([SHEBANG] + self.commands(resolve)) + "\n"

    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]

    def find(self, step_type: type) -> list[Step]:
        return [step for step in self.steps if isinstance(step, step_type)]

    def refs(self) -> list[Ref]:
        """Every reference the script depends on, in order of appearance."""
        found = []
        for step in self.find(FstabEntry):
            for value in (step.dns_name, step.mount_name):
                if isinstance(value, Ref) and value not in found:
                    found.append(value)
        return found


def compose_boot_script(
    os_family: OsFamily,
    dns_name: Ref | str,
    mount_name: Ref | str,
    mount_path: str = MOUNT_PATH,
    dir_mode: str = "770",
    init: InstanceInit | None = None,
    tuning: bool = False,
    finalize: FinalizeMode = FinalizeMode.MOUNT,
) -> UserData:
    """
    Build the boot script that installs the Lustre client and mounts the filesystem.

    Order: strict mode, package update, client install, mount directory,
    fstab entry, bundle files, kernel-module tuning, then ``mount -a``
    or ``reboot``.

    Args:
        os_family: Selects the package manager and client install method
        dns_name: Filesystem DNS name
        mount_name: Filesystem mount name
        mount_path: Where the filesystem is mounted
        dir_mode: Permission bits of the mount directory
        init: Optional boot-time configuration bundle
        tuning: Append the high-throughput kernel-module options
        finalize: Mount immediately or reboot

    Returns:
        UserData with the selected steps

    Example:
        script = compose_boot_script(
            OsFamily.UBUNTU,
            fs.dns_name,
            fs.mount_name,
            tuning=True,
            finalize=FinalizeMode.REBOOT,
        )
    """
    steps: list[Step] = [
        StrictMode(),
        PackageUpdate(os_family),
        ClientInstall(os_family),
        MountDirectory(
            path=mount_path,
            mode=dir_mode,
            user=os_family.default_user,
            group=os_family.default_group,
        ),
        FstabEntry(dns_name=dns_name, mount_name=mount_name, path=mount_path),
    ]

    if init is not None:
        steps.extend(WriteFile(f) for f in init.files)

    if tuning:
        steps.append(LustreTuning())

    steps.append(Finalize(finalize))

    return UserData(tuple(steps))
