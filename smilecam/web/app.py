from __future__ import annotations

from typing import Optional

from flask import Flask, Response, jsonify, render_template_string, request

from smilecam.runner import SessionWorker
from smilecam.session import SessionController
from smilecam.utils.logging import setup_logger


logger = setup_logger()


INDEX_HTML = """
<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.2/dist/css/bootstrap.min.css" rel="stylesheet"/>
    <title>Smile Detector</title>
    <style>
      .video-wrap { background: #111; border-radius: .5rem; min-height: 360px; }
      .video-wrap img { width: 100%; border-radius: .5rem; }
    </style>
  </head>
  <body>
    <div class="container my-4" style="max-width: 760px;">
      <h3 class="mb-3">Smile Detector 😊</h3>
      <div class="video-wrap d-flex align-items-center justify-content-center mb-3">
        <img id="video" alt="camera" style="display:none" />
        <span id="placeholder" class="text-secondary">Camera is off</span>
      </div>
      <div class="d-flex gap-2 mb-3">
        <button id="start-btn" class="btn btn-primary">Start Camera</button>
        <button id="stop-btn" class="btn btn-outline-secondary" disabled>Stop Camera</button>
      </div>
      <div id="status" class="alert alert-info py-2">{{ status }}</div>
    </div>

    <script>
      const video = document.getElementById('video');
      const placeholder = document.getElementById('placeholder');
      const startBtn = document.getElementById('start-btn');
      const stopBtn = document.getElementById('stop-btn');
      const statusEl = document.getElementById('status');
      let active = false;

      function render(s) {
        statusEl.textContent = s.status;
        const nowActive = s.state === 'active';
        startBtn.disabled = s.state !== 'idle';
        stopBtn.disabled = s.state === 'idle';
        if (nowActive && !active) {
          video.src = "{{ url_for('video_feed') }}?t=" + Date.now();
          video.style.display = '';
          placeholder.style.display = 'none';
        } else if (!nowActive && active) {
          video.removeAttribute('src');
          video.style.display = 'none';
          placeholder.style.display = '';
        }
        active = nowActive;
      }

      async function post(url, body) {
        const r = await fetch(url, {
          method: 'POST',
          headers: {'Content-Type': 'application/json'},
          body: JSON.stringify(body || {}),
        });
        render(await r.json());
      }

      async function poll() {
        try {
          const r = await fetch("{{ url_for('api_status') }}", {cache: 'no-store'});
          render(await r.json());
        } catch (e) {}
        setTimeout(poll, 500);
      }

      startBtn.addEventListener('click', () => post("{{ url_for('api_start') }}"));
      stopBtn.addEventListener('click', () => post("{{ url_for('api_stop') }}"));
      document.addEventListener('visibilitychange', () => {
        post("{{ url_for('api_visibility') }}", {hidden: document.hidden});
      });
      poll();
    </script>
  </body>
</html>
"""


def create_app(controller: SessionController, worker: Optional[SessionWorker] = None) -> Flask:
    """Flask host for one session. The caller owns and starts the worker thread."""
    app = Flask(__name__)

    @app.route("/")
    def index() -> str:
        return render_template_string(INDEX_HTML, status=controller.status.message)

    @app.get("/api/health")
    def api_health() -> Response:
        return jsonify({"ok": True, "service": "smilecam", "version": 1})

    @app.get("/api/status")
    def api_status() -> Response:
        return jsonify(controller.snapshot())

    @app.post("/api/start")
    def api_start() -> Response:
        if not controller.start():
            logger.info(f"Start ignored or failed (state={controller.state.value})")
        return jsonify(controller.snapshot())

    @app.post("/api/stop")
    def api_stop() -> Response:
        controller.stop()
        return jsonify(controller.snapshot())

    @app.post("/api/visibility")
    def api_visibility():
        data = request.get_json(silent=True)
        hidden = data.get("hidden") if isinstance(data, dict) else None
        if not isinstance(hidden, bool):
            return jsonify({"error": "invalid_hidden", "message": "'hidden' must be a boolean"}), 400
        controller.set_hidden(hidden)
        return jsonify(controller.snapshot())

    @app.get("/video_feed")
    def video_feed():
        if worker is None:
            return jsonify({"error": "no_stream", "message": "No frame worker attached"}), 503
        return Response(worker.mjpeg(), mimetype="multipart/x-mixed-replace; boundary=frame")

    return app
