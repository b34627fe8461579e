import argparse
import logging
import os
from pathlib import Path
from concurrent.futures import ProcessPoolExecutor, as_completed

import cv2
from tqdm import tqdm

from faceoverlay.config import load_and_merge
from faceoverlay.utils import setup_logging
from faceoverlay.loader import ImageLoader
from faceoverlay.engine import AlignmentConfig, AlignmentEngine
from faceoverlay.render import OverlayImage, DebugOptions, render_overlay, draw_debug
from faceoverlay.writers import ResultsWriter, build_record

logger = logging.getLogger("faceoverlay.main")


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Face-anchored overlay alignment")
    # Live mode is the default when neither --image nor --input-dir is given
    p.add_argument("--camera", type=int, default=None, help="Camera index for live mode")
    p.add_argument("--mirror", action="store_true", help="Mirror camera frames (selfie view)")
    # Single-image mode
    p.add_argument("--image", help="Path to a single image (PNG/JPG)")
    p.add_argument("--save-render", default=None, help="Optional path to save the composited image (single-image mode)")
    # Batch mode
    p.add_argument("--input-dir", help="Directory of images to process (batch mode)")
    p.add_argument("--output-dir", help="Directory to write outputs (JSON + summary)")
    p.add_argument("--max-files", type=int, default=None, help="Optional max files to process (for testing)")
    p.add_argument("--workers", type=int, default=None, help="Number of worker processes (0=single-thread)")
    p.add_argument("--save-renders", action="store_true", help="Write composited images to output/renders")
    # Alignment
    p.add_argument("--overlay", default=None, help="Overlay image (PNG with alpha)")
    p.add_argument("--anchor", default=None, help="Anchor mode: nose, forehead, eyes_mid, left_eye, right_eye, mouth, left_ear, right_ear")
    p.add_argument("--width-fraction", type=float, default=None, help="Overlay width as a fraction of the viewport width")
    p.add_argument("--debug", action="store_true", help="Draw all landmarks and anchor markers")
    # Config
    p.add_argument("--config", default=None, help="Optional YAML config path")
    p.add_argument("--log-level", default=None, help="Override log level (e.g., INFO, WARNING)")
    return p.parse_args()


def align_one_path(path_str: str, cfg: dict) -> dict:
    """Align the overlay for one image file and return its record.

    Runs inside worker processes, so it builds its own detector and engine.
    """
    from faceoverlay.facemesh import FaceMeshDetector, FaceMeshConfig
    from faceoverlay.types import ImageMeta as IMeta, MalformedLandmarkSetError, OverlayTransform, Viewport

    engine = AlignmentEngine(AlignmentConfig.from_config(cfg))
    anchor = engine.config.anchor_mode.value

    loader = ImageLoader(input_dir=Path(path_str).parent)
    img, meta, err = loader.read_image(path_str)
    if err or img is None or meta is None:
        meta_fallback = meta if meta is not None else IMeta(path=str(path_str), width=0, height=0)
        return build_record(meta_fallback, OverlayTransform.absent(), anchor_mode=anchor, reason=err or "unreadable")

    with FaceMeshDetector(FaceMeshConfig.from_config(cfg, static_image_mode=True)) as det:
        fl, det_info = det.detect(img)
    if fl is None:
        return build_record(meta, OverlayTransform.absent(), anchor_mode=anchor, reason="no_face")

    viewport = Viewport.of_image(img)
    try:
        geometry = engine.measure(fl, viewport)
    except MalformedLandmarkSetError as e:
        logger.warning("%s: %s", path_str, e)
        return build_record(meta, OverlayTransform.absent(), det_info, anchor_mode=anchor, reason="malformed_landmarks")
    transform = engine.transform_from_geometry(geometry, viewport)
    rec = build_record(meta, transform, det_info, geometry, anchor_mode=anchor)

    paths = cfg.get("paths", {})
    if paths.get("save_renders"):
        overlay = OverlayImage.load(paths.get("overlay_image"))
        rendered = render_overlay(img, overlay, transform)
        debug = DebugOptions.from_config(cfg)
        if debug.enabled:
            draw_debug(rendered, debug, viewport, landmarks=fl, geometry=geometry, transform=transform)
        writer = ResultsWriter(cfg["paths"]["output_dir"], cfg)
        rec["render"] = writer.save_render(path_str, rendered)
    return rec


def main():
    # Reduce TF/MediaPipe verbosity if desired
    os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")

    args = parse_args()

    # Build CLI overrides for config merging
    cli_overrides = {"paths": {}, "runtime": {}, "alignment": {}, "camera": {}, "debug": {}}
    if args.input_dir:
        cli_overrides["paths"]["input_dir"] = args.input_dir
    if args.output_dir:
        cli_overrides["paths"]["output_dir"] = args.output_dir
    if args.save_renders:
        cli_overrides["paths"]["save_renders"] = True
    if args.overlay:
        cli_overrides["paths"]["overlay_image"] = args.overlay
    if args.anchor:
        cli_overrides["alignment"]["anchor_mode"] = args.anchor
    if args.width_fraction is not None:
        cli_overrides["alignment"]["overlay_width_fraction"] = args.width_fraction
    if args.camera is not None:
        cli_overrides["camera"]["index"] = args.camera
    if args.mirror:
        cli_overrides["camera"]["mirror"] = True
    if args.debug:
        cli_overrides["debug"] = {"draw_all_landmarks": True, "draw_markers": True}
    if args.max_files is not None:
        cli_overrides["runtime"]["max_files"] = args.max_files
    if args.workers is not None:
        cli_overrides["runtime"]["workers"] = args.workers
    if args.log_level:
        cli_overrides["runtime"]["log_level"] = args.log_level

    cfg = load_and_merge(args.config, cli_overrides)

    setup_logging(cfg.get("runtime", {}).get("log_level", "INFO"))

    try:
        AlignmentConfig.from_config(cfg)
    except ValueError as e:
        raise SystemExit(f"Invalid alignment config: {e}")

    # Single-image mode
    if args.image and not args.input_dir:
        from faceoverlay.facemesh import FaceMeshDetector, FaceMeshConfig
        from faceoverlay.types import MalformedLandmarkSetError, Viewport

        loader = ImageLoader(input_dir=Path(args.image).parent)
        image, meta, err = loader.read_image(args.image)
        if err or image is None or meta is None:
            raise SystemExit(f"Failed to read image: {args.image} ({err})")

        with FaceMeshDetector(FaceMeshConfig.from_config(cfg, static_image_mode=True)) as det:
            fl, det_info = det.detect(image)

        engine = AlignmentEngine(AlignmentConfig.from_config(cfg))
        viewport = Viewport.of_image(image)
        try:
            transform = engine.align(fl, viewport)
        except MalformedLandmarkSetError as e:
            raise SystemExit(f"Malformed landmarks for {args.image}: {e}")
        if not transform.present:
            print("No face detected")
            return

        print("Landmarks:", fl.normalized.shape, det_info.bbox)
        print(
            "Overlay: center=(%.1f, %.1f) width=%.1f rotation=%.2f deg"
            % (transform.center_x, transform.center_y, transform.width_px, transform.rotation_degrees)
        )

        if args.save_render:
            overlay = OverlayImage.load(cfg["paths"].get("overlay_image"))
            rendered = render_overlay(image, overlay, transform)
            debug = DebugOptions.from_config(cfg)
            if debug.enabled:
                geometry = engine.measure(fl, viewport)
                draw_debug(rendered, debug, viewport, landmarks=fl, geometry=geometry, transform=transform)
            cv2.imwrite(str(args.save_render), rendered)
            print("Saved render:", args.save_render)
        return

    # Batch mode
    if args.input_dir or args.output_dir:
        input_dir = cfg.get("paths", {}).get("input_dir")
        output_dir = cfg.get("paths", {}).get("output_dir")
        if not input_dir or not output_dir:
            raise SystemExit("Batch mode requires --input-dir and --output-dir (or set in config)")

        loader = ImageLoader(input_dir=input_dir, max_files=cfg.get("runtime", {}).get("max_files"))
        paths = list(loader.enumerate())
        if not paths:
            print("No images found in", input_dir)
            return

        writer = ResultsWriter(output_dir, cfg)

        workers = int(cfg.get("runtime", {}).get("workers", 0) or 0)
        if workers <= 0:
            for p in tqdm(paths, desc="Aligning", unit="img"):
                writer.add(align_one_path(str(p), cfg))
        else:
            with ProcessPoolExecutor(max_workers=workers) as ex:
                futures = {ex.submit(align_one_path, str(p), cfg): p for p in paths}
                for fut in tqdm(as_completed(futures), total=len(futures), desc="Aligning", unit="img"):
                    try:
                        writer.add(fut.result())
                    except Exception as e:
                        logger.error("Worker failed on %s: %s", futures[fut], e)
                        writer.add_failure()

        summary = writer.finalize()
        print("Summary:", summary["counts"])
        return

    # Live mode
    from faceoverlay.live import run_live

    try:
        run_live(cfg)
    except RuntimeError as e:
        raise SystemExit(f"Could not start camera: {e}")


if __name__ == "__main__":
    main()
