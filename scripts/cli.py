"""
CLI to record a timed emotion session -> JSON report (+ CSV timeline).
"""
from __future__ import annotations
import argparse, json, logging, sys, time
from core.capture import list_cameras
from core.config import Settings
from core.errors import CameraUnavailableError, ConfigurationError
from core.report import export_csv, export_json
from core.session import SessionController

def main(argv=None):
    p = argparse.ArgumentParser()
    p.add_argument("--seconds", type=float, default=60.0, help="Recording length in seconds")
    p.add_argument("--name", default="", help="Participant name")
    p.add_argument("--notes", default="", help="Session notes")
    p.add_argument("--out", default="output/report.json", help="Path to output JSON")
    p.add_argument("--csv", default=None, help="Optional path for the CSV timeline")
    p.add_argument("--camera", type=int, default=None, help="Camera index (default: CAMERA_INDEX)")
    p.add_argument("--list-cameras", action="store_true", help="Print the camera indices that open, then exit")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    if args.list_cameras:
        print(json.dumps({"cameras": list_cameras()}))
        return

    settings = Settings() if args.camera is None else Settings(CAMERA_INDEX=args.camera)
    controller = SessionController(settings)
    try:
        controller.start(args.name, args.notes)
    except (ConfigurationError, CameraUnavailableError) as e:
        print(f"⚠️ {e}", file=sys.stderr)
        sys.exit(2)

    try:
        time.sleep(args.seconds)
    except KeyboardInterrupt:
        pass
    report = controller.stop()
    print(json.dumps(report.model_dump(), indent=2, ensure_ascii=False))

    export_json(report, args.out)
    print(f"✅ Report written to {args.out}")
    if args.csv:
        export_csv(controller.series.items(), args.csv)
        print(f"✅ Timeline written to {args.csv}")

if __name__ == "__main__":
    main()
