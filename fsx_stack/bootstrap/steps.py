"""
Boot script steps.

Each step is a small value object that knows the shell commands it
stands for. Steps that mention not-yet-materialized values (the
filesystem's DNS name, its mount name) hold ``Ref`` objects and take a
resolver when rendering.
"""

from dataclasses import dataclass
from enum import Enum

from fsx_stack.resources.base import Ref, Resolver, render
from fsx_stack.resources.compute import InitFile, OsFamily

FSX_UBUNTU_KEY_URL = (
    "https://fsx-lustre-client-repo-public-keys.s3.amazonaws.com/fsx-ubuntu-public-key.asc"
)
FSX_UBUNTU_KEYRING = "/usr/share/keyrings/fsx-ubuntu-public-key.gpg"
FSX_UBUNTU_REPO = "https://fsx-lustre-client-repo.s3.amazonaws.com/ubuntu"
FSX_UBUNTU_SOURCES_LIST = "/etc/apt/sources.list.d/fsxlustreclientrepo.list"

LUSTRE_MOUNT_OPTIONS = "defaults,noatime,flock,_netdev 0 0"
MODPROBE_CONF = "/etc/modprobe.d/modprobe.conf"


@dataclass(frozen=True)
class Step:
    """Base class for boot script steps."""

    name = "step"

    def commands(self, resolve: Resolver = str) -> list[str]:
        raise NotImplementedError


@dataclass(frozen=True)
class StrictMode(Step):
    """Abort on the first failing command, on unset variables, and echo commands."""

    name = "strict-mode"

    def commands(self, resolve: Resolver = str) -> list[str]:
        return ["set -eux"]


@dataclass(frozen=True)
class PackageUpdate(Step):
    os_family: OsFamily

    name = "package-update"

    def commands(self, resolve: Resolver = str) -> list[str]:
        if self.os_family == OsFamily.UBUNTU:
            return ["apt -y update && apt -y upgrade"]
        return ["yum update -y"]


@dataclass(frozen=True)
class ClientInstall(Step):
    """
    Install the Lustre kernel client.

    Ubuntu pulls it from the signed FSx client repository (jammy);
    Amazon Linux uses the extras mechanism.
    """

    os_family: OsFamily

    name = "client-install"

    def commands(self, resolve: Resolver = str) -> list[str]:
        if self.os_family == OsFamily.UBUNTU:
            return [
                f"wget -O - {FSX_UBUNTU_KEY_URL} | gpg --dearmor "
                f"| sudo tee {FSX_UBUNTU_KEYRING} >/dev/null",
                f"echo 'deb [signed-by={FSX_UBUNTU_KEYRING}] {FSX_UBUNTU_REPO} jammy main' "
                f"> {FSX_UBUNTU_SOURCES_LIST} && apt-get -y update",
                "apt install -y linux-aws lustre-client-modules-aws",
            ]
        return ["amazon-linux-extras install -y lustre"]


@dataclass(frozen=True)
class MountDirectory(Step):
    """Create the mount point with the given mode and owner."""

    path: str
    mode: str
    user: str
    group: str

    name = "mount-directory"

    def commands(self, resolve: Resolver = str) -> list[str]:
        return [
            f"mkdir -p {self.path}",
            f"chmod {self.mode} {self.path}",
            f"chown {self.user}:{self.group} {self.path}",
        ]


@dataclass(frozen=True)
class FstabEntry(Step):
    """Append the Lustre mount to /etc/fstab."""

    dns_name: Ref | str
    mount_name: Ref | str
    path: str

    name = "mount-config"

    def line(self, resolve: Resolver = str) -> str:
        """The fstab line itself, without the shell plumbing around it."""
        dns = render(self.dns_name, resolve)
        mount = render(self.mount_name, resolve)
        return f"{dns}@tcp:/{mount} {self.path} lustre {LUSTRE_MOUNT_OPTIONS}"

    def commands(self, resolve: Resolver = str) -> list[str]:
        return [f'echo "{self.line(resolve)}" >> /etc/fstab']


@dataclass(frozen=True)
class WriteFile(Step):
    """Place a file from the boot-time configuration bundle."""

    file: InitFile

    name = "write-file"

    def commands(self, resolve: Resolver = str) -> list[str]:
        directory = self.file.path.rsplit("/", 1)[0] or "/"
        content = self.file.content.rstrip("\n")
        return [
            f"mkdir -p {directory}",
            f"cat > {self.file.path} <<'EOF'\n{content}\nEOF",
            f"chmod {self.file.mode[-3:]} {self.file.path}",
        ]


@dataclass(frozen=True)
class LustreTuning(Step):
    """Kernel-module parameters recommended for instances with many vCPUs."""

    ptlrpcd_per_cpt_max: int = 32
    ksocklnd_credits: int = 2560

    name = "tuning"

    def commands(self, resolve: Resolver = str) -> list[str]:
        return [
            f'echo "options ptlrpc ptlrpcd_per_cpt_max={self.ptlrpcd_per_cpt_max}" >> {MODPROBE_CONF}',
            f'echo "options ksocklnd credits={self.ksocklnd_credits}" >> {MODPROBE_CONF}',
        ]


class FinalizeMode(str, Enum):
    MOUNT = "mount"
    REBOOT = "reboot"


@dataclass(frozen=True)
class Finalize(Step):
    """
    Last step: mount right away, or reboot so a freshly installed kernel
    module and its options are loaded before the fstab mount runs.
    """

    mode: FinalizeMode = FinalizeMode.MOUNT

    name = "finalize"

    def commands(self, resolve: Resolver = str) -> list[str]:
        if self.mode == FinalizeMode.REBOOT:
            return ["reboot"]
        return ["mount -a"]
