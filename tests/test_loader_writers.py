import json

import cv2
import numpy as np
import yaml

from faceoverlay.loader import ImageLoader
from faceoverlay.types import BBox, DetectionInfo, ImageMeta, OverlayTransform
from faceoverlay.writers import ResultsWriter, build_record


def _write_png(path, h=8, w=12):
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.stem + ".tmp.png")
    assert cv2.imwrite(str(tmp), np.zeros((h, w, 3), dtype=np.uint8))
    tmp.rename(path)


def test_enumerate_filters_and_limits(tmp_path):
    _write_png(tmp_path / "a.png")
    _write_png(tmp_path / "sub" / "b.PNG")
    (tmp_path / "notes.txt").write_text("x")
    found = list(ImageLoader(tmp_path).enumerate())
    assert sorted(p.name for p in found) == ["a.png", "b.PNG"]
    assert len(list(ImageLoader(tmp_path, max_files=1).enumerate())) == 1


def test_enumerate_missing_dir(tmp_path):
    assert list(ImageLoader(tmp_path / "missing").enumerate()) == []


def test_read_image_meta(tmp_path):
    _write_png(tmp_path / "a.png", h=8, w=12)
    img, meta, err = ImageLoader(tmp_path).read_image(tmp_path / "a.png")
    assert err is None
    assert img.shape == (8, 12, 3)
    assert (meta.width, meta.height, meta.channels, meta.ext) == (12, 8, 3, ".png")


def test_read_image_unreadable(tmp_path):
    bad = tmp_path / "bad.jpg"
    bad.write_bytes(b"not an image")
    img, meta, err = ImageLoader(tmp_path).read_image(bad)
    assert img is None and meta is None
    assert err == "unreadable"


def test_build_record_present_and_absent():
    meta = ImageMeta(path="x.png", width=640, height=480)
    t = OverlayTransform(present=True, center_x=1.0, center_y=2.0, width_px=640.0, rotation_degrees=3.0)
    det = DetectionInfo(bbox=BBox(1, 2, 3, 4))
    rec = build_record(meta, t, det, anchor_mode="nose")
    assert rec["transform"]["center_y"] == 2.0
    assert rec["bbox"] == {"x": 1, "y": 2, "w": 3, "h": 4}
    assert rec["reason"] is None

    missed = build_record(meta, OverlayTransform.absent(), reason="no_face")
    assert missed["transform"] == {"present": False}
    assert missed["bbox"] is None


def test_writer_finalize(tmp_path):
    cfg = {"paths": {"input_dir": str(tmp_path / "in")}, "alignment": {"anchor_mode": "nose"}}
    writer = ResultsWriter(tmp_path / "out", cfg)
    meta = ImageMeta(path="a.png", width=10, height=10)
    writer.add(build_record(meta, OverlayTransform(True, 1.0, 1.0, 10.0, 0.0)))
    writer.add(build_record(meta, OverlayTransform.absent(), reason="no_face"))
    writer.add(build_record(meta, OverlayTransform.absent(), reason="no_face"))
    writer.add_failure()
    summary = writer.finalize()

    assert summary["counts"] == {"aligned": 1, "missed": 2, "failed": 1, "total": 4}
    assert summary["missed_reasons"] == {"no_face": 2}
    aligned = json.loads((tmp_path / "out" / "aligned_index.json").read_text(encoding="utf-8"))
    assert len(aligned) == 1
    on_disk = yaml.safe_load((tmp_path / "out" / "summary.yaml").read_text(encoding="utf-8"))
    assert on_disk["alignment"]["anchor_mode"] == "nose"


def test_render_path_mirrors_input_tree(tmp_path):
    cfg = {"paths": {"input_dir": str(tmp_path / "in")}}
    writer = ResultsWriter(tmp_path / "out", cfg)
    dest = writer.render_path(tmp_path / "in" / "sub" / "face.jpg")
    assert dest == tmp_path / "out" / "renders" / "sub" / "face.png"
    outside = writer.render_path(tmp_path / "elsewhere" / "face.jpg")
    assert outside == tmp_path / "out" / "renders" / "face.png"


def test_save_render_writes_png(tmp_path):
    writer = ResultsWriter(tmp_path / "out", {"paths": {"input_dir": str(tmp_path)}})
    saved = writer.save_render(tmp_path / "a.jpg", np.zeros((4, 4, 3), dtype=np.uint8))
    assert saved is not None
    assert cv2.imread(saved).shape == (4, 4, 3)
