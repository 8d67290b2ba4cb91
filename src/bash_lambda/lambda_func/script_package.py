"""
Script packaging for Lambda functions.
Derives resource names from a script path and zips the script for upload.
"""
import io
import logging
import os
import zipfile
from typing import NamedTuple

logger = logging.getLogger(__name__)

# rwxr-xr-x, stored in the high 16 bits of external_attr
SCRIPT_PERMISSIONS = 0o755 << 16


class ScriptNames(NamedTuple):
    base_name: str
    function_name: str
    role_name: str
    zip_name: str
    handler: str
    script_member: str


def derive_names(script_path: str) -> ScriptNames:
    """
    Derive every resource name from a script path.

    The base name is the file name up to its first dot, so ``scripts/foo.sh``
    and ``foo.tar.sh`` both map to ``foo``.

    Args:
        script_path: Path to the shell script

    Returns:
        The function, role, zip and handler names for the script

    Raises:
        ValueError: If no base name can be derived
    """
    base_name = os.path.basename(script_path).split('.')[0]
    if not base_name:
        raise ValueError(f"Cannot derive a function name from script path {script_path!r}")

    return ScriptNames(
        base_name=base_name,
        function_name=base_name,
        role_name=f"{base_name}_lambdarole",
        zip_name=f"{base_name}.zip",
        handler=f"{base_name}.handler",
        script_member=f"{base_name}.sh",
    )


class ScriptPackage:
    """A shell script and the names of the resources deployed from it."""

    def __init__(self, script_path: str):
        self.script_path = script_path
        self.names = derive_names(script_path)

    def build_zip(self) -> bytes:
        """
        Zip the script in memory.

        The script is stored at the archive root as ``<base>.sh``, the file
        the runtime layer loads for handler ``<base>.handler``.

        Returns:
            Zip archive bytes
        """
        buffer = io.BytesIO()
        info = zipfile.ZipInfo(self.names.script_member)
        info.external_attr = SCRIPT_PERMISSIONS
        info.compress_type = zipfile.ZIP_DEFLATED

        with open(self.script_path, 'rb') as script_file:
            content = script_file.read()

        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(info, content)

        logger.debug(f"Packaged {self.script_path} as {self.names.zip_name} ({buffer.tell()} bytes)")
        return buffer.getvalue()
