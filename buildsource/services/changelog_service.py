"""
Changelog serialization for buildsource.

Dumps a PackageHistory to the history.xml format consumed by the build
inside the sandbox:

    <YPKG>
        <Update release="12" type="security">
            <Date>2021-03-04</Date>
            <Version>1.2.4</Version>
            <Comment><![CDATA[Fixes CVE-2021-0001]]></Comment>
            <Name><![CDATA[Author Name]]></Name>
            <Email>author@example.com</Email>
        </Update>
    </YPKG>
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from lxml import etree

from ..domain.history import PackageHistory, PackageUpdate
from ..exit_codes import SerializationError

logger = logging.getLogger(__name__)

INDENT = "    "
FILE_MODE = 0o644


def _character_data(text: str):
    """Wrap text as CDATA, unless it contains the CDATA terminator."""
    if ']]>' in text:
        return text
    return etree.CDATA(text)


def _update_element(parent, update: PackageUpdate):
    element = etree.SubElement(parent, "Update")
    element.set("release", str(update.release))
    if update.is_security:
        element.set("type", "security")

    etree.SubElement(element, "Date").text = update.date
    etree.SubElement(element, "Version").text = update.version
    etree.SubElement(element, "Comment").text = _character_data(update.body)
    etree.SubElement(element, "Name").text = _character_data(update.author)
    etree.SubElement(element, "Email").text = update.author_email
    return element


def render_history_xml(history: PackageHistory) -> bytes:
    """
    Render the history as an indented YPKG document.

    Raises:
        SerializationError: if any value cannot be represented in XML
    """
    try:
        root = etree.Element("YPKG")
        for update in history.updates:
            _update_element(root, update)
        etree.indent(root, space=INDENT)
        return etree.tostring(root, encoding="utf-8")
    except (ValueError, TypeError, etree.LxmlError) as e:
        raise SerializationError(f"cannot render history of {history.manifest_path}: {e}") from e


def write_history_xml(history: PackageHistory, path: Union[str, Path]) -> None:
    """
    Dump the update history to an XML file for the build to merge in.

    The file is replaced atomically: either the complete document is
    written or the previous file (if any) stays untouched.

    Raises:
        SerializationError: on render or I/O failure
    """
    path = Path(path)
    data = render_history_xml(history)

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, FILE_MODE)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise SerializationError(f"cannot write {path}: {e}", path=str(path)) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    logger.debug(f"wrote {len(history)} updates to {path}")
