import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path

import cv2

from yolo_camkit import DetectorConfig, ImagePipeline, load_detector_config, load_engine
from yolo_camkit.image import bgr_to_rgb


def read_labels(path: str):
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip()]


def main() -> int:
    parser = argparse.ArgumentParser(description="Run YOLO detection on one image and print the boxes.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--model", default="Models/yolov8n.onnx", help="Path to a YOLO model (.onnx/.pt).")
    parser.add_argument("--labels", default="Models/labels.txt", help="Text file with one class name per line.")
    parser.add_argument("--config", default=None, help="Optional detector config JSON.")
    parser.add_argument("--imgsz", type=int, default=640, help="Model input size when the model does not declare one.")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold (overrides config).")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS (overrides config).")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / torchscript.")
    parser.add_argument("--json", action="store_true", help="Print detections as JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_detector_config(Path(args.config)) if args.config else DetectorConfig()
    overrides = {}
    if args.conf is not None:
        overrides["confidence_threshold"] = args.conf
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if overrides:
        cfg = replace(cfg, **overrides)

    labels = read_labels(args.labels)
    engine = load_engine(args.model, backend=args.backend, input_size=int(args.imgsz))
    pipeline = ImagePipeline(engine, labels, cfg)

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    detections = pipeline(bgr_to_rgb(img))
    if args.json:
        payload = [
            {"label": pipeline.post.label_for(d), "score": d.score, "cx": d.cx, "cy": d.cy, "w": d.w, "h": d.h}
            for d in detections
        ]
        print(json.dumps(payload, indent=2))
    else:
        for det in detections:
            print(pipeline.post.label_for(det), f"{det.score:.3f}", det.as_xyxy())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
