"""
core/persistence.py - Layout and snapshot JSON files.

Layouts are stored in the canonical shape (template_elements /
canvas_settings / print_settings). Older records that kept the elements
under visualTemplate, or the paper size and orientation at the top level,
are lifted into that shape on load.

Logo paths inside the layout's folder are written relative to the file and
resolved back to absolute paths on load, so a layout folder can be moved.
"""
from __future__ import annotations

import json
import os
import re
import sys
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote

from .models import Layout
from .snapshot import LayoutSnapshot


DEBUG_PERSIST = False

_PAPER_SIZES = {"a4": "A4", "letter": "Letter", "legal": "Legal"}
_MARGIN_PRESETS = {
    "narrow": {"top": "10mm", "right": "10mm", "bottom": "10mm", "left": "10mm"},
    "normal": {"top": "20mm", "right": "15mm", "bottom": "20mm", "left": "15mm"},
    "wide": {"top": "25mm", "right": "25mm", "bottom": "25mm", "left": "25mm"},
}


class LayoutFileError(Exception):
    """A layout or snapshot file could not be read or written."""


# ---------------------------------------------------------------------------
# Portable asset paths
# ---------------------------------------------------------------------------

def _is_windows_absolute(path: str) -> bool:
    """Drive letter or UNC path, even on non-Windows."""
    if not path:
        return False
    if re.match(r'^[a-zA-Z]:[\\/]', path):
        return True
    if re.match(r'^[\\/]{2}[^\\/]+[\\/]+[^\\/]+', path):
        return True
    return False


def _is_image_reference(ref: str) -> bool:
    """Logo content that points at a file (not the LOGO sentinel or a data/http URL)."""
    if not ref or ref == "LOGO":
        return False
    return not re.match(r'^(data:|https?://)', ref, re.I)


def make_asset_path_portable(asset_path: str, layout_path: str) -> str:
    """
    Relative path if *asset_path* lives under the layout file's folder,
    else *asset_path* unchanged.
    """
    if not asset_path or not layout_path or not os.path.isabs(asset_path):
        return asset_path

    layout_dir = os.path.dirname(os.path.abspath(layout_path))
    asset_abs = os.path.abspath(asset_path)
    dir_norm = os.path.normcase(os.path.normpath(layout_dir))
    asset_norm = os.path.normcase(os.path.normpath(asset_abs))
    try:
        if os.path.commonpath([dir_norm, asset_norm]) == dir_norm:
            return os.path.relpath(asset_abs, layout_dir)
    except ValueError:
        # different drives on Windows
        pass
    return asset_path


def resolve_asset_path(asset_path: str, layout_path: str) -> str:
    """Absolute path for a relative *asset_path*, resolved against the layout folder."""
    if not asset_path or not layout_path:
        return asset_path
    if os.path.isabs(asset_path) or _is_windows_absolute(asset_path):
        return asset_path
    layout_dir = os.path.dirname(os.path.abspath(layout_path))
    return os.path.normpath(os.path.join(layout_dir, asset_path))


def _map_logo_paths(elements: List[Dict[str, Any]], fn, layout_path: str) -> List[Dict[str, Any]]:
    out = []
    for elem in elements:
        elem = dict(elem)
        if elem.get("type") == "logo" and _is_image_reference(elem.get("content", "")):
            elem["content"] = fn(elem["content"], layout_path)
        out.append(elem)
    return out


# ---------------------------------------------------------------------------
# Legacy normalization
# ---------------------------------------------------------------------------

def normalize_layout_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Lift legacy records into the canonical layout dict.

    Accepts a bare layout, a row wrapped in style_definition, the old
    visualTemplate.{elements, canvasSettings} shape, and top-level
    paperSize / orientation / margins.
    """
    d = dict(data.get("style_definition") or data)

    visual = d.get("visualTemplate") or {}
    elements = d.get("template_elements")
    if elements is None:
        elements = d.get("templateElements")
    if elements is None:
        elements = visual.get("elements") or []

    canvas = d.get("canvas_settings") or d.get("canvasSettings") or visual.get("canvasSettings") or {}
    canvas = dict(canvas)
    printing = dict(d.get("print_settings") or d.get("printSettings") or {})

    legacy_paper = printing.pop("paperSize", None) or d.get("paperSize")
    if legacy_paper and "pageSize" not in canvas:
        canvas["pageSize"] = _PAPER_SIZES.get(str(legacy_paper).lower(), "A4")

    orientation = printing.pop("orientation", None) or d.get("orientation") or "portrait"

    legacy_margins = printing.pop("margins", None) or d.get("margins")
    if legacy_margins and "pageMargins" not in printing:
        if isinstance(legacy_margins, dict):
            printing["pageMargins"] = dict(legacy_margins)
        else:
            printing["pageMargins"] = dict(_MARGIN_PRESETS.get(str(legacy_margins), _MARGIN_PRESETS["normal"]))

    return {
        "name": d.get("name", "Untitled"),
        "orientation": str(orientation).lower(),
        "template_elements": list(elements),
        "canvas_settings": canvas,
        "print_settings": printing,
    }


# ---------------------------------------------------------------------------
# Layout files
# ---------------------------------------------------------------------------

def layout_to_file_dict(layout: Layout, path: str) -> Dict[str, Any]:
    d = layout.to_dict()
    d["template_elements"] = _map_logo_paths(d["template_elements"], make_asset_path_portable, path)
    return d


def save_layout(layout: Layout, path: str) -> str:
    """Write *layout* as JSON; returns the path actually written (.json added)."""
    if not path.lower().endswith(".json"):
        path += ".json"
    data = layout_to_file_dict(layout, path)
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise LayoutFileError(f"Could not save layout to {path}: {e}") from e
    if DEBUG_PERSIST:
        print(f"[PERSIST] saved {len(layout)} elements to {path}", file=sys.stderr)
    return path


def load_layout(path: str) -> Layout:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise LayoutFileError(f"{path} is not valid JSON (line {e.lineno}): {e.msg}") from e
    except OSError as e:
        raise LayoutFileError(f"Could not read {path}: {e}") from e

    if not isinstance(raw, dict):
        raise LayoutFileError(f"{path} does not contain a layout object")

    data = normalize_layout_dict(raw)
    data["template_elements"] = _map_logo_paths(data["template_elements"], resolve_asset_path, path)
    try:
        layout = Layout.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise LayoutFileError(f"{path} has an invalid layout: {type(e).__name__}: {e}") from e

    if DEBUG_PERSIST:
        print(f"[PERSIST] loaded {len(layout)} elements from {path}", file=sys.stderr)
    return layout


# ---------------------------------------------------------------------------
# Snapshot store
# ---------------------------------------------------------------------------

_SUFFIX = ".snapshot.json"


class SnapshotStore:
    """
    One JSON file per prescription id inside *root*.

    File names are the percent-encoded id, so distinct ids never share a
    file and ids() can decode them back. Snapshots are write-once: saving a
    second snapshot for the same prescription raises unless overwrite=True.
    """

    def __init__(self, root: str):
        self.root = root
        os.makedirs(root, exist_ok=True)

    def path_for(self, prescription_id: str) -> str:
        if not prescription_id:
            raise LayoutFileError("A snapshot needs a prescription id")
        return os.path.join(self.root, quote(prescription_id, safe="") + _SUFFIX)

    def __contains__(self, prescription_id: str) -> bool:
        return bool(prescription_id) and os.path.exists(self.path_for(prescription_id))

    def save(self, snapshot: LayoutSnapshot, overwrite: bool = False) -> str:
        path = self.path_for(snapshot.prescription_id)
        if os.path.exists(path) and not overwrite:
            raise LayoutFileError(f"A snapshot for {snapshot.prescription_id!r} already exists")
        tmp = path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise LayoutFileError(f"Could not save snapshot to {path}: {e}") from e
        if DEBUG_PERSIST:
            print(f"[PERSIST] snapshot {snapshot.prescription_id} -> {path}", file=sys.stderr)
        return path

    def load(self, prescription_id: str) -> Optional[LayoutSnapshot]:
        path = self.path_for(prescription_id)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                snap = LayoutSnapshot.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            raise LayoutFileError(f"Could not read snapshot {path}: {e}") from e
        # case-insensitive file systems can hand back another id's file
        if snap.prescription_id != prescription_id:
            raise LayoutFileError(
                f"{path} holds the snapshot for {snap.prescription_id!r}, not {prescription_id!r}"
            )
        return snap

    def delete(self, prescription_id: str) -> bool:
        """Drop the snapshot along with its prescription record."""
        path = self.path_for(prescription_id)
        if not os.path.exists(path):
            return False
        os.remove(path)
        return True

    def ids(self) -> List[str]:
        return sorted(
            unquote(name[: -len(_SUFFIX)]) for name in os.listdir(self.root) if name.endswith(_SUFFIX)
        )
