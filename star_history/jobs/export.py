"""Hand the assembled dataset to the external renderer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import tempfile
from typing import Any, Optional, Union

from star_history.config.settings import settings
from star_history.models.series import Dataset
from star_history.utils.redaction import sanitize_log_extra

logger = logging.getLogger(__name__)

DATA_PLACEHOLDER = "var data = [];"

PathLike = Union[str, Path]


def _epoch(value) -> Optional[int]:
    return int(value.timestamp()) if value is not None else None


def dataset_document(dataset: Dataset) -> dict[str, Any]:
    """JSON document: renderer series plus the axis bounds."""
    return {
        "generated_at": _epoch(dataset.generated_at),
        "bounds": {
            "min_time": _epoch(dataset.min_time),
            "max_time": _epoch(dataset.max_time),
            "max_stars": dataset.max_stars,
        },
        "series": dataset.to_payload(),
    }


def render_html(dataset: Dataset, template: str) -> str:
    """
    Substitute the dataset into a renderer template

    Raises:
        ValueError: if the template has no ``var data = [];`` placeholder
    """
    if DATA_PLACEHOLDER not in template:
        raise ValueError(f"template does not contain the placeholder {DATA_PLACEHOLDER!r}")
    data = json.dumps(dataset.to_payload(), ensure_ascii=False)
    return template.replace(DATA_PLACEHOLDER, f"var data = {data};", 1)


def default_output_dir() -> Path:
    if settings.OUTPUT_DIR:
        return Path(settings.OUTPUT_DIR)
    return Path(tempfile.gettempdir()) / "star-history"


def export_dataset(
    dataset: Dataset,
    output: Optional[PathLike] = None,
    template: Optional[PathLike] = None,
) -> Path:
    """
    Write the dataset as JSON, or as HTML when a template is given

    Args:
        dataset: Assembled dataset
        output: Target file; defaults to ``<output dir>/<generated_at>.<ext>``
        template: Renderer HTML template containing ``var data = [];``

    Returns:
        Path of the written file
    """
    if template is not None:
        content = render_html(dataset, Path(template).read_text(encoding="utf-8"))
        extension = "html"
    else:
        content = json.dumps(dataset_document(dataset), ensure_ascii=False, indent=2)
        extension = "json"

    if output is None:
        path = default_output_dir() / f"{_epoch(dataset.generated_at)}.{extension}"
    else:
        path = Path(output)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Dataset written", extra=sanitize_log_extra(path=str(path), series=len(dataset.series)))
    return path
