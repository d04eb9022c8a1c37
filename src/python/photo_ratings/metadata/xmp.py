"""
XMP rating helpers.

Reads ``xmp:Rating`` from sidecar files and from XMP packets embedded in
images, and writes it into sidecars (creating them when absent). Both the
element form (``<xmp:Rating>3</xmp:Rating>``) and the attribute form
(``<rdf:Description xmp:Rating="3">``) are understood.
"""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from photo_ratings.exceptions import MetadataWriteError
from photo_ratings.models.ratings import normalize_rating

logger = logging.getLogger(__name__)

# XMP namespace definitions
XMP_NAMESPACES = {
    "x": "adobe:ns:meta/",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "xmp": "http://ns.adobe.com/xap/1.0/",
}

# Register namespaces for ElementTree
for prefix, uri in XMP_NAMESPACES.items():
    ET.register_namespace(prefix, uri)

X_NS = "{adobe:ns:meta/}"
RDF_NS = "{http://www.w3.org/1999/02/22-rdf-syntax-ns#}"
XMP_NS = "{http://ns.adobe.com/xap/1.0/}"

PACKET_START = b"<x:xmpmeta"
PACKET_END = b"</x:xmpmeta>"


def sidecar_candidates(file_path: Union[str, Path]) -> List[Path]:
    """
    Possible sidecar paths for a file, in lookup order.

    ``IMG_1234.xmp`` (Adobe style) comes first, ``IMG_1234.ARW.xmp``
    (darktable style) second.
    """
    file_path = Path(file_path)
    return [
        file_path.with_suffix(".xmp"),
        file_path.with_name(file_path.name + ".xmp"),
    ]


def find_sidecar(file_path: Union[str, Path]) -> Optional[Path]:
    """Get the existing sidecar of a file, or None."""
    for candidate in sidecar_candidates(file_path):
        if candidate.is_file():
            return candidate
    return None


def rating_from_tree(root: ET.Element) -> Optional[int]:
    """
    Find the rating in a parsed XMP document.

    Returns:
        Normalized rating (1-5), or None if absent
    """
    for desc in root.iter(f"{RDF_NS}Description"):
        value = desc.get(f"{XMP_NS}Rating")
        if value is not None:
            return normalize_rating(value)

    for elem in root.iter(f"{XMP_NS}Rating"):
        return normalize_rating(elem.text)

    return None


def read_xmp_rating(xmp_path: Union[str, Path]) -> Optional[int]:
    """
    Read the rating from an XMP sidecar file.

    Args:
        xmp_path: Path to the XMP file

    Returns:
        Rating value (1-5), or None if not found or the file cannot be parsed
    """
    try:
        tree = ET.parse(xmp_path)
    except ET.ParseError as e:
        logger.warning("Could not parse XMP sidecar %s: %s", xmp_path, e)
        return None
    return rating_from_tree(tree.getroot())


def extract_xmp_packet(data: bytes) -> Optional[bytes]:
    """Cut the ``x:xmpmeta`` packet out of raw file bytes."""
    start = data.find(PACKET_START)
    if start == -1:
        return None
    end = data.find(PACKET_END, start)
    if end == -1:
        return None
    return data[start:end + len(PACKET_END)]


def read_embedded_xmp_rating(file_path: Union[str, Path]) -> Optional[int]:
    """
    Read ``xmp:Rating`` from an XMP packet embedded in an image file.

    Args:
        file_path: Path to the image

    Returns:
        Rating value (1-5), or None
    """
    with open(file_path, "rb") as f:
        packet = extract_xmp_packet(f.read())

    if packet is None:
        return None

    try:
        root = ET.fromstring(packet)
    except ET.ParseError as e:
        logger.debug("Malformed XMP packet in %s: %s", file_path, e)
        return None
    return rating_from_tree(root)


def create_xmp_template() -> ET.Element:
    """
    Create a minimal XMP template structure.

    Returns:
        Root element of XMP structure.
    """
    root = ET.Element(f"{X_NS}xmpmeta")
    root.set(f"{X_NS}xmptk", "photo-ratings")

    rdf = ET.SubElement(root, f"{RDF_NS}RDF")
    desc = ET.SubElement(rdf, f"{RDF_NS}Description")
    desc.set(f"{RDF_NS}about", "")

    return root


def write_xmp_rating(xmp_path: Union[str, Path], rating: int) -> None:
    """
    Write a rating into an XMP sidecar, creating the sidecar if needed.

    Existing content of the sidecar is preserved; only ``xmp:Rating`` and
    ``xmp:ModifyDate`` change.

    Args:
        xmp_path: Sidecar path
        rating: Rating value (1-5)

    Raises:
        MetadataWriteError: If the sidecar cannot be parsed or written
    """
    xmp_path = Path(xmp_path)

    try:
        if xmp_path.exists():
            root = ET.parse(xmp_path).getroot()
        else:
            root = create_xmp_template()

        rdf = root if root.tag == f"{RDF_NS}RDF" else root.find(f".//{RDF_NS}RDF")
        if rdf is None:
            rdf = ET.SubElement(root, f"{RDF_NS}RDF")

        desc = rdf.find(f"{RDF_NS}Description")
        if desc is None:
            desc = ET.SubElement(rdf, f"{RDF_NS}Description")
            desc.set(f"{RDF_NS}about", "")

        rating_elem = desc.find(f"{XMP_NS}Rating")
        if desc.get(f"{XMP_NS}Rating") is not None or (rating_elem is None and _uses_attributes(desc)):
            desc.set(f"{XMP_NS}Rating", str(rating))
            if rating_elem is not None:
                desc.remove(rating_elem)
        else:
            if rating_elem is None:
                rating_elem = ET.SubElement(desc, f"{XMP_NS}Rating")
            rating_elem.text = str(rating)

        modify_date = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        if desc.get(f"{XMP_NS}ModifyDate") is not None:
            desc.set(f"{XMP_NS}ModifyDate", modify_date)
        else:
            modify_elem = desc.find(f"{XMP_NS}ModifyDate")
            if modify_elem is None:
                modify_elem = ET.SubElement(desc, f"{XMP_NS}ModifyDate")
            modify_elem.text = modify_date

        ET.ElementTree(root).write(xmp_path, encoding="utf-8", xml_declaration=True)

    except (ET.ParseError, OSError) as e:
        raise MetadataWriteError(f"Failed to write XMP sidecar {xmp_path}: {e}") from e


def _uses_attributes(desc: ET.Element) -> bool:
    # Lightroom style sidecars keep simple xmp properties as attributes
    return any(key.startswith(XMP_NS) for key in desc.attrib)
