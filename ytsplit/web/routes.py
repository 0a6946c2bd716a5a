"""Web UI routes for ytsplit."""

import copy
import json
import queue
import threading
import uuid
from pathlib import Path

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    render_template,
    request,
    send_file,
)

from ytsplit.config import Config, parse_bool
from ytsplit.downloader import DownloadError, ToolNotFoundError
from ytsplit.editors.split import SplitError
from ytsplit.engine import SplitJob, process

bp = Blueprint("web", __name__, template_folder="templates")

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}


def _job_config(base: Config, options: dict) -> Config:
    config = copy.deepcopy(base)
    silence = options.get("silence", {})
    refine = options.get("refine", {})
    if "threshold_db" in silence:
        config.silence.threshold_db = float(silence["threshold_db"])
    if "min_duration" in silence:
        config.silence.min_duration = float(silence["min_duration"])
    if "enabled" in refine:
        config.refine.enabled = parse_bool(refine["enabled"])
    if "window" in refine:
        config.refine.window = float(refine["window"])
    if "download_cover" in options:
        config.download_cover = parse_bool(options["download_cover"])
    return config


@bp.route("/")
def index():
    return render_template("index.html")


@bp.route("/api/jobs", methods=["POST"])
def create_job():
    options = request.get_json(silent=True) or {}
    url = (options.get("url") or "").strip()
    if not url:
        return jsonify({"error": "No URL provided"}), 400

    try:
        config = _job_config(current_app.config["YTSPLIT_CONFIG"], options)
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid option: {e}"}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)

    split_job = SplitJob(
        url=url,
        config=config,
        output_dir=job_dir,
        artist=options.get("artist") or None,
        album=options.get("album") or None,
    )

    progress_queue: queue.Queue = queue.Queue()
    job = {
        "url": url,
        "dir": job_dir,
        "status": "processing",
        "error": None,
        "progress_queue": progress_queue,
    }
    _jobs[job_id] = job

    def run():
        try:
            def on_progress(stage: str, frac: float):
                progress_queue.put({"stage": stage, "progress": round(frac, 3)})

            result = process(split_job, on_progress=on_progress)
            job["tracks"] = result.tracks
            job["result"] = {
                "title": result.title,
                "artist": result.artist,
                "album": result.album,
                "chapter_source": result.chapter_source,
                "tracks": [
                    {
                        "number": n,
                        "title": chapter.title,
                        "start": chapter.start_time,
                        "end": chapter.end_time,
                    }
                    for n, chapter in enumerate(result.chapters, 1)
                ],
                "refinement": [
                    {"title": e.title, "delta": round(e.delta, 3)} for e in result.refinement
                ],
            }
            job["status"] = "done"
        except (DownloadError, ToolNotFoundError, SplitError) as e:
            job["status"] = "error"
            job["error"] = str(e)
        except Exception as e:
            job["status"] = "error"
            job["error"] = f"Unexpected error: {e}"
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"job_id": job_id, "status": "started"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    q = job["progress_queue"]

    def generate():
        while True:
            try:
                msg = q.get(timeout=600)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if job["status"] == "error":
                    data = json.dumps({"error": job["error"]})
                else:
                    data = json.dumps({
                        "stage": "complete",
                        "progress": 1.0,
                        "result": job.get("result"),
                    })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    resp = {"status": job["status"], "url": job["url"]}
    if job["status"] == "done":
        resp["result"] = job.get("result")
    if job["status"] == "error":
        resp["error"] = job.get("error")
    return jsonify(resp)


@bp.route("/api/jobs/<job_id>/tracks/<int:number>")
def download_track(job_id: str, number: int):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] != "done":
        return jsonify({"error": "Job not complete"}), 409

    tracks: list[Path] = job["tracks"]
    if not 1 <= number <= len(tracks):
        return jsonify({"error": "Track not found"}), 404
    return send_file(tracks[number - 1], as_attachment=True)
