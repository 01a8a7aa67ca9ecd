# app.py: small Flask API to preview the score layers written by the pipeline
# deps: pip install flask numpy rasterio pillow pyproj

from __future__ import annotations
import io
from typing import Optional

import numpy as np
from flask import Flask, jsonify, make_response, request
from PIL import Image
from pyproj import Transformer

from .export import read_stack
from .grid import rc_to_xy, xy_to_rc
from .models import RasterStack

RESAMPLING = {"nearest": Image.Resampling.NEAREST, "bilinear": Image.Resampling.BILINEAR}


# region Helpers
def _stretch(arr: np.ndarray) -> np.ndarray:
    valid = arr[np.isfinite(arr)]
    if valid.size == 0:
        lo, hi = 0.0, 1.0
    else:
        lo, hi = np.percentile(valid, [2, 98])
        if not np.isfinite(lo) or not np.isfinite(hi) or hi <= lo:
            lo, hi = float(np.min(valid)), float(np.max(valid))
            if hi <= lo:
                hi = lo + 1.0
    scaled = np.clip((arr - lo) / max(hi - lo, 1e-6), 0, 1)
    return np.where(np.isfinite(scaled), scaled, 0.0)


def _window(stack: RasterStack, to_grid: Transformer, bbox: str):
    minx, miny, maxx, maxy = [float(v) for v in bbox.split(",")]
    xs, ys = to_grid.transform([minx, maxx, minx, maxx], [miny, miny, maxy, maxy])
    r, c = xy_to_rc(stack.spec, xs, ys)
    H, W = stack.spec.shape
    r0, r1 = max(0, int(r.min())), min(H, int(r.max()) + 1)
    c0, c1 = max(0, int(c.min())), min(W, int(c.max()) + 1)
    if r0 >= r1 or c0 >= c1:
        raise ValueError("bbox does not intersect the grid")
    return slice(r0, r1), slice(c0, c1)
# endregion


def create_app(stack_path: Optional[str] = None, stack: Optional[RasterStack] = None) -> Flask:
    if stack is None:
        if stack_path is None:
            raise ValueError("Need a stack or a path to one")
        stack = read_stack(stack_path)
    to_grid = Transformer.from_crs("EPSG:4326", stack.spec.crs, always_xy=True)
    to_wgs84 = Transformer.from_crs(stack.spec.crs, "EPSG:4326", always_xy=True)

    app = Flask(__name__)

    # ======= CORS =======
    @app.after_request
    def _cors(resp):
        resp.headers["Access-Control-Allow-Origin"] = "*"
        resp.headers["Access-Control-Allow-Headers"] = "*"
        resp.headers["Access-Control-Allow-Methods"] = "GET,OPTIONS"
        return resp

    @app.route("/", methods=["GET"])
    def root():
        return jsonify({
            "ok": True,
            "source": stack_path,
            "bands": stack.names,
            "crs": stack.spec.crs,
            "shape": list(stack.spec.shape),
            "res": stack.spec.res,
            "bounds": list(stack.spec.bounds),
        })

    @app.route("/layer/part", methods=["GET"])
    def layer_part():
        band = request.args.get("band", stack.names[-1])
        if band not in stack.bands:
            return jsonify({"error": f"unknown band {band!r}", "bands": stack.names}), 404

        arr = stack[band]
        bbox = request.args.get("bbox")
        if bbox:
            try:
                rows, cols = _window(stack, to_grid, bbox)
            except ValueError as e:
                return jsonify({"error": f"bbox=minlon,minlat,maxlon,maxlat required ({e})"}), 400
            arr = arr[rows, cols]

        try:
            W = int(request.args.get("width", "256"))
            H = int(request.args.get("height", "256"))
        except ValueError:
            return jsonify({"error": "width and height must be integers"}), 400
        if W < 1 or H < 1:
            return jsonify({"error": "width and height must be positive"}), 400
        resampling = RESAMPLING.get(request.args.get("resampling", "nearest").lower(), Image.Resampling.NEAREST)

        img = Image.fromarray((_stretch(arr) * 255).astype("uint8")).resize((W, H), resampling)
        buf = io.BytesIO()
        img.save(buf, "PNG")
        buf.seek(0)
        resp = make_response(buf.read())
        resp.headers["Content-Type"] = "image/png"
        return resp

    @app.route("/layer/point", methods=["GET"])
    def layer_point():
        try:
            lon = float(request.args["lon"]); lat = float(request.args["lat"])
        except (KeyError, ValueError):
            return jsonify({"error": "lon and lat required"}), 400

        x, y = to_grid.transform(lon, lat)
        r, c = xy_to_rc(stack.spec, [x], [y])
        r, c = int(r[0]), int(c[0])
        H, W = stack.spec.shape
        if not (0 <= r < H and 0 <= c < W):
            return jsonify({"coordinate": [lon, lat], "values": None, "inside": False})

        values = {}
        for name, arr in stack.bands.items():
            v = float(arr[r, c])
            values[name] = None if np.isnan(v) else v
        cx, cy = rc_to_xy(stack.spec, r, c)
        center = [float(v) for v in to_wgs84.transform(float(cx), float(cy))]
        return jsonify({
            "coordinate": [lon, lat],
            "cell": [r, c],
            "cell_center": center,
            "values": values,
            "inside": True,
        })

    return app
