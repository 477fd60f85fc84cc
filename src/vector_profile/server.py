"""FastAPI server for vector profiling."""

from __future__ import annotations

import io
import shutil
import tempfile
import zipfile
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse

from .config import load_options
from .corridor import build_corridor
from .errors import ConfigurationError, QueryCardinalityError, ResourceError
from .formatter import FormatConfig, iter_lines
from .models import Polyline, ProfileResult
from .profiler import profile_dataset
from .reader import VectorDataset, open_dataset

app = FastAPI(title="Vector Profile", version="0.1.0")

COMPANION_EXTS = {".shp", ".shx", ".dbf", ".prj"}


@app.post("/profile")
async def profile_shapefile(
    files: list[UploadFile],
    east_north: str = Query(..., description="Profiling line vertices as east,north,east,north,..."),
    buffer: float = Query(10.0, ge=0),
    type: str = Query("point,line"),
    where: str | None = None,
    layer: int = Query(1, ge=1),
    dp: int = Query(2, ge=0, le=32),
    separator: str = "pipe",
    no_z: bool = False,
    no_header: bool = False,
    format: str = Query("csv", pattern="^(csv|json)$"),
):
    """Profile an uploaded point/line shapefile along a line.

    Accepts:
    - A single .zip containing shapefile components
    - Multiple files (.shp, .shx, .dbf, and optionally .prj)
    """
    try:
        coords = [float(v) for v in east_north.split(",") if v.strip()]
        options = load_options(
            input="upload.shp",
            types=[t.strip() for t in type.split(",") if t.strip()],
            east_north=coords,
            buffer=buffer,
            where=where,
            layer=layer,
            dp=dp,
            separator=separator,
            no_z=no_z,
            no_header=no_header,
        )
    except (ValueError, ConfigurationError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    filename = (files[0].filename or "").lower() if len(files) == 1 else ""
    if filename.endswith(".zip"):
        dataset, extract_dir = await _handle_zip(files[0])
    else:
        dataset, extract_dir = await _handle_multi_file(files), None

    profile = Polyline.from_coords(options.profile_coords)
    try:
        with dataset:
            with_z = dataset.has_z and not options.no_z
            store = dataset.attribute_store(options.layer)
            try:
                results = profile_dataset(
                    dataset,
                    profile,
                    options.buffer,
                    types=options.types,
                    layer=options.layer,
                    where=options.where,
                    with_z=with_z,
                    store=store,
                    corridor=build_corridor(profile, options.buffer),
                )
                config = FormatConfig(
                    delimiter=options.delimiter,
                    dp=options.dp,
                    with_z=with_z,
                    columns=store.describe() if store is not None else None,
                    header=not options.no_header,
                )
                if format == "json":
                    return ProfileResult(
                        metadata=dataset.metadata,
                        tolerance=options.buffer,
                        profile_length=profile.length,
                        columns=[c.name for c in config.columns or []],
                        records=list(results),
                    )
                lines = list(iter_lines(results, config, store))
            finally:
                if store is not None:
                    store.close()
    except (ConfigurationError, QueryCardinalityError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ResourceError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    finally:
        if extract_dir is not None:
            shutil.rmtree(extract_dir, ignore_errors=True)

    return StreamingResponse(
        iter(lines),
        media_type="text/plain",
        headers={"Content-Disposition": "attachment; filename=profile.txt"},
    )


async def _handle_zip(upload: UploadFile) -> tuple[VectorDataset, str]:
    """Extract a shapefile from a zip archive and open it."""
    content = await upload.read()
    extract_dir = tempfile.mkdtemp()
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as zf:
            zf.extractall(extract_dir)
    except zipfile.BadZipFile as e:
        shutil.rmtree(extract_dir, ignore_errors=True)
        raise HTTPException(status_code=400, detail=f"Invalid zip archive: {e}") from e

    shp_files = list(Path(extract_dir).rglob("*.shp"))
    if not shp_files:
        shutil.rmtree(extract_dir, ignore_errors=True)
        raise HTTPException(status_code=400, detail="No .shp file found in zip archive")

    try:
        return open_dataset(shp_files[0]), extract_dir
    except ResourceError as e:
        shutil.rmtree(extract_dir, ignore_errors=True)
        raise HTTPException(status_code=422, detail=str(e)) from e


async def _handle_multi_file(files: list[UploadFile]) -> VectorDataset:
    """Open a shapefile from its uploaded component files, keyed by extension."""
    parts = {
        Path(f.filename or "").suffix.lower(): f
        for f in files
        if Path(f.filename or "").suffix.lower() in COMPANION_EXTS
    }
    if ".shp" not in parts:
        raise HTTPException(status_code=400, detail="Missing required .shp file")

    streams = {ext: io.BytesIO(await upload.read()) for ext, upload in parts.items()}
    prj = streams.pop(".prj", None)
    try:
        return open_dataset(
            shp_file=streams[".shp"],
            shx_file=streams.get(".shx"),
            dbf_file=streams.get(".dbf"),
            prj_wkt=prj.getvalue().decode("utf-8", errors="replace") if prj is not None else None,
            name=Path(parts[".shp"].filename).stem,
        )
    except ResourceError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
