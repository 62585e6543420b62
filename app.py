import io
import json
import logging
import time

from flask import Flask, jsonify, request, send_file, session, url_for
from werkzeug.exceptions import RequestEntityTooLarge

from config import load_settings
from errors import (
    ImageReplaced,
    IndexOutOfRange,
    InvalidOperation,
    RemoteCallFailure,
    ValidationError,
    WorkflowBusy,
)
from gemini_service import ASPECT_RATIOS, GeminiService
from image_utils import extension_for, parse_data_url, read_upload, to_generative_part
from session_state import SessionStore

logger = logging.getLogger(__name__)

FAILURE_MESSAGES = {
    "generate": "Failed to generate image. Please try again.",
    "edit": "Failed to edit image. Please try again.",
    "enhance": "Failed to enhance prompt. Please try again.",
    "think": "An error occurred during the thinking process.",
    "search": "An error occurred during the web search.",
}


def create_app(settings=None, service=None, store=None):
    if settings is None:
        settings = load_settings()
    if service is None:
        service = GeminiService(settings)
    if store is None:
        store = SessionStore(settings.max_sessions, settings.session_ttl)

    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=settings.secret_key,
        MAX_CONTENT_LENGTH=settings.max_upload_mb * 1024 * 1024,
    )

    def client_state():
        sid = session.get("sid")
        if not sid:
            sid = session["sid"] = store.new_id()
        return store.get(sid)

    def request_data():
        return request.get_json(silent=True) or {}

    def raw_prompt(data):
        prompt = data.get("prompt")
        return prompt if isinstance(prompt, str) else ""

    def prompt_from(data):
        return raw_prompt(data).strip()

    def run_remote(state, workflow, func, *args):
        """Run one remote call under the workflow's in-flight guard.

        Returns (result, elapsed seconds). A RemoteCallFailure is logged and
        replaced by the workflow's user-facing message.
        """
        with state.in_flight(workflow):
            start = time.time()
            try:
                result = func(*args)
            except RemoteCallFailure as e:
                logger.exception("%s request failed", workflow)
                raise RemoteCallFailure(FAILURE_MESSAGES[workflow]) from e
        return result, round(time.time() - start, 1)

    def history_payload(state):
        editing = state.is_busy("edit")
        with state.lock:
            payload = state.history.to_dict(
                lambda index, entry: url_for("editor_image", index=index, v=entry.serial)
            )
        payload["editing"] = editing
        return payload

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(IndexOutOfRange)
    def handle_index_error(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(WorkflowBusy)
    def handle_busy(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(ImageReplaced)
    def handle_image_replaced(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(RemoteCallFailure)
    def handle_remote_failure(e):
        return jsonify({"error": str(e)}), 502

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        return jsonify({"error": f"Image is larger than {settings.max_upload_mb} MB"}), 413

    @app.route("/")
    def index():
        return HTML_PAGE.replace(
            "/*__ASPECT_RATIOS__*/", json.dumps(ASPECT_RATIOS),
        ).replace(
            "__IMAGE_MODEL__", settings.image_model,
        ).replace(
            "__EDIT_MODEL__", settings.edit_model,
        ).replace(
            "__TEXT_MODEL__", settings.text_model,
        ).replace(
            "__PRO_MODEL__", settings.pro_model,
        )

    @app.route("/api/generate-image", methods=["POST"])
    def generate_image():
        data = request_data()
        prompt = prompt_from(data)
        aspect_ratio = data.get("aspect_ratio") or ASPECT_RATIOS[0]

        if not prompt:
            raise ValidationError("Please enter a prompt.")
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValidationError(f"Unsupported aspect ratio: {aspect_ratio}")

        image, elapsed = run_remote(
            client_state(), "generate", service.generate_image, prompt, aspect_ratio,
        )
        return jsonify({
            "image": image.to_data_url(),
            "mime_type": image.mime_type,
            "extension": extension_for(image.mime_type),
            "elapsed": elapsed,
        })

    @app.route("/api/enhance-prompt", methods=["POST"])
    def enhance_prompt():
        prompt = prompt_from(request_data())
        if not prompt:
            raise ValidationError("Please enter a prompt.")

        text, elapsed = run_remote(client_state(), "enhance", service.enhance_prompt, prompt)
        return jsonify({"text": text, "elapsed": elapsed})

    @app.route("/api/editor/history")
    def editor_history():
        return jsonify(history_payload(client_state()))

    @app.route("/api/editor/upload", methods=["POST"])
    def editor_upload():
        if "image" in request.files:
            image = read_upload(request.files["image"])
        else:
            data = request_data()
            if not data.get("image_data"):
                raise ValidationError("Please choose an image to upload.")
            filename = data.get("filename")
            if filename is not None and not isinstance(filename, str):
                raise ValidationError("filename must be a string")
            image = parse_data_url(data["image_data"], filename or None)

        state = client_state()
        with state.lock:
            state.history.reset(image)
        logger.info("New source image %s (%s, %d bytes)", image.filename, image.mime_type, len(image.data))
        return jsonify(history_payload(state))

    @app.route("/api/editor/select", methods=["POST"])
    def editor_select():
        index = request_data().get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            raise ValidationError("index must be an integer")

        state = client_state()
        with state.lock:
            state.history.select(index)
        return jsonify(history_payload(state))

    @app.route("/api/editor/edit", methods=["POST"])
    def editor_edit():
        # stored and sent as typed; stripping is only for the emptiness check
        prompt = raw_prompt(request_data())
        state = client_state()

        with state.lock:
            base = state.history.current()
            if base is None or not prompt.strip():
                raise InvalidOperation("Please upload an image and provide an edit prompt.")
            base_index = state.history.active_index
            epoch = state.history.epoch

        image_base64, mime_type = to_generative_part(base.image_ref)
        result, elapsed = run_remote(state, "edit", service.edit_image, prompt, image_base64, mime_type)

        # the result belongs after the entry it was made from, even if another
        # entry was selected while the edit was running
        with state.lock:
            if state.history.epoch != epoch:
                raise ImageReplaced("A new image was uploaded while the edit was running.")
            state.history.select(base_index)
            state.history.append_edit(prompt, result)

        payload = history_payload(state)
        payload["elapsed"] = elapsed
        return jsonify(payload)

    @app.route("/api/editor/image/<int:index>")
    def editor_image(index):
        state = client_state()
        with state.lock:
            entry = state.history.get(index)

        image = entry.image_ref
        ext = extension_for(image.mime_type)
        if index == 0:
            download_name = image.filename or f"original.{ext}"
        else:
            download_name = f"edited-with-banana-studio.{ext}"
        return send_file(
            io.BytesIO(image.data),
            mimetype=image.mime_type,
            as_attachment=request.args.get("download") == "1",
            download_name=download_name,
        )

    @app.route("/api/pro/think", methods=["POST"])
    def pro_think():
        prompt = prompt_from(request_data())
        if not prompt:
            raise ValidationError("Please enter a prompt.")

        text, elapsed = run_remote(client_state(), "think", service.pro_task, prompt)
        return jsonify({"text": text, "elapsed": elapsed})

    @app.route("/api/pro/search", methods=["POST"])
    def pro_search():
        prompt = prompt_from(request_data())
        if not prompt:
            raise ValidationError("Please enter a question.")

        result, elapsed = run_remote(client_state(), "search", service.grounded_search, prompt)
        return jsonify({
            "text": result.text,
            "sources": [{"uri": s.uri, "title": s.title} for s in result.sources],
            "elapsed": elapsed,
        })

    return app


HTML_PAGE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Banana Studio</title>
<style>
  *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    background: #0f0f0f;
    color: #e0e0e0;
    min-height: 100vh;
    display: flex;
    flex-direction: column;
  }

  /* ── Header & tabs ── */

  header {
    position: sticky;
    top: 0;
    z-index: 10;
    background: rgba(20, 20, 20, 0.85);
    backdrop-filter: blur(6px);
    border-bottom: 1px solid #1e1e1e;
  }

  .header-inner {
    max-width: 1200px;
    margin: 0 auto;
    padding: 14px 24px;
    display: flex;
    align-items: center;
    justify-content: space-between;
  }

  .brand {
    display: flex;
    align-items: center;
    gap: 10px;
  }
  .brand .logo { font-size: 1.6rem; }
  .brand h1 { font-size: 1.2rem; font-weight: 700; color: #facc15; }

  .tabs {
    display: flex;
    gap: 4px;
    background: #1a1a1a;
    border: 1px solid #2a2a2a;
    border-radius: 10px;
    padding: 4px;
  }

  .tab-btn {
    background: transparent;
    color: #aaa;
    box-shadow: none;
    padding: 7px 16px;
  }
  .tab-btn:hover { background: #232323; color: #e0e0e0; }
  .tab-btn.active { background: #facc15; color: #111; font-weight: 600; }

  main {
    flex: 1;
    width: 100%;
    max-width: 1200px;
    margin: 0 auto;
    padding: 28px 24px 60px;
  }

  .tab-panel { display: none; }
  .tab-panel.active { display: block; }

  footer {
    text-align: center;
    padding: 16px;
    color: #555;
    font-size: 0.78rem;
  }

  /* ── Layout ── */

  .grid-2 {
    display: grid;
    grid-template-columns: 1fr 1fr;
    gap: 28px;
  }
  @media (max-width: 860px) { .grid-2 { grid-template-columns: 1fr; } }

  .stack {
    display: flex;
    flex-direction: column;
    gap: 16px;
  }

  .card {
    background: #141414;
    border: 1px solid #1e1e1e;
    border-radius: 12px;
    padding: 22px;
  }

  h2 { font-size: 1.5rem; font-weight: 700; color: #facc15; }
  h3 { font-size: 1.15rem; font-weight: 700; color: #facc15; }
  h4 { font-size: 0.8rem; font-weight: 600; color: #aaa; text-transform: uppercase; letter-spacing: 0.5px; }
  .muted { color: #888; font-size: 0.88rem; line-height: 1.5; }
  .centered { text-align: center; }

  .field-header {
    display: flex;
    justify-content: space-between;
    align-items: center;
    margin-bottom: 8px;
  }
  label { font-size: 0.82rem; color: #bbb; }

  textarea {
    width: 100%;
    min-height: 120px;
    background: #1a1a1a;
    color: #e0e0e0;
    border: 1px solid #2a2a2a;
    border-radius: 10px;
    padding: 14px;
    font-size: 0.9rem;
    font-family: inherit;
    resize: vertical;
    outline: none;
    transition: border-color 0.2s;
    line-height: 1.5;
  }
  textarea:focus { border-color: #facc15; }
  textarea::placeholder { color: #555; }
  textarea:disabled { opacity: 0.6; }

  button {
    background: #facc15;
    color: #111;
    border: none;
    border-radius: 8px;
    padding: 10px 20px;
    font-size: 0.85rem;
    font-weight: 600;
    cursor: pointer;
    transition: background 0.2s, opacity 0.2s;
  }
  button:hover { background: #eab308; }
  button:disabled { opacity: 0.5; cursor: not-allowed; }

  .link-btn {
    background: none;
    color: #facc15;
    padding: 0;
    font-size: 0.8rem;
  }
  .link-btn:hover { background: none; color: #fde047; }
  .link-btn:disabled { color: #555; }

  .secondary-btn {
    background: #232323;
    color: #ddd;
    border: 1px solid #333;
  }
  .secondary-btn:hover { background: #2e2e2e; }

  .row { display: flex; gap: 12px; }
  .row > * { flex: 1; }
  @media (max-width: 600px) { .row { flex-direction: column; } }

  .ratio-grid {
    display: grid;
    grid-template-columns: repeat(5, 1fr);
    gap: 8px;
  }
  .ratio-btn { background: #232323; color: #ccc; font-weight: 500; padding: 8px; }
  .ratio-btn:hover { background: #2e2e2e; }
  .ratio-btn.active { background: #facc15; color: #111; font-weight: 700; }

  .upload-label {
    display: block;
    text-align: center;
    background: #232323;
    border: 1px solid #333;
    color: #ddd;
    font-weight: 600;
    font-size: 0.85rem;
    border-radius: 8px;
    padding: 10px 16px;
    cursor: pointer;
    white-space: nowrap;
    overflow: hidden;
    text-overflow: ellipsis;
  }
  .upload-label:hover { background: #2e2e2e; }
  input[type=file] { display: none; }

  .error-text { color: #f87171; text-align: center; font-size: 0.85rem; min-height: 1.2em; }

  .status {
    font-size: 0.78rem;
    color: #888;
    min-height: 1.2em;
  }
  .status .timer { color: #facc15; font-variant-numeric: tabular-nums; }

  .loading {
    display: flex;
    align-items: center;
    gap: 10px;
    color: #888;
  }
  .spinner {
    width: 16px; height: 16px;
    border: 2px solid #333;
    border-top-color: #facc15;
    border-radius: 50%;
    animation: spin 0.8s linear infinite;
  }
  @keyframes spin { to { transform: rotate(360deg); } }

  /* ── Image panes ── */

  .image-pane {
    width: 100%;
    aspect-ratio: 1 / 1;
    background: #141414;
    border: 1px solid #1e1e1e;
    border-radius: 12px;
    display: flex;
    align-items: center;
    justify-content: center;
    padding: 10px;
    color: #555;
    text-align: center;
  }
  .image-pane img {
    max-width: 100%;
    max-height: 100%;
    object-fit: contain;
    border-radius: 8px;
  }

  .download-link {
    display: none;
    text-align: center;
    background: #232323;
    border: 1px solid #333;
    color: #ddd;
    font-size: 0.85rem;
    font-weight: 600;
    padding: 9px 16px;
    border-radius: 8px;
    text-decoration: none;
    width: 100%;
    max-width: 280px;
    margin: 0 auto;
  }
  .download-link.visible { display: block; }
  .download-link:hover { background: #2e2e2e; }

  /* ── History ── */

  .history { display: none; }
  .history.visible { display: block; }
  .history ul {
    list-style: none;
    margin-top: 8px;
    background: #141414;
    border: 1px solid #1e1e1e;
    border-radius: 10px;
    padding: 6px;
    max-height: 200px;
    overflow-y: auto;
  }
  .history-btn {
    width: 100%;
    text-align: left;
    background: none;
    color: #ccc;
    font-weight: 400;
    padding: 8px 12px;
    white-space: nowrap;
    overflow: hidden;
    text-overflow: ellipsis;
  }
  .history-btn:hover { background: #232323; }
  .history-btn.active { background: #facc15; color: #111; font-weight: 600; }

  /* ── Pro Studio output ── */

  .output-card {
    background: #0f0f0f;
    border: 1px solid #2a2a2a;
    border-radius: 10px;
    padding: 16px;
    white-space: pre-wrap;
    word-break: break-word;
    line-height: 1.6;
    font-size: 0.9rem;
    display: none;
    overflow-x: auto;
  }
  .output-card.visible { display: block; }

  .sources { display: none; }
  .sources.visible { display: block; }
  .sources ul { margin: 8px 0 0 18px; }
  .sources li { margin: 4px 0; font-size: 0.85rem; }
  .sources a { color: #facc15; text-decoration: none; }
  .sources a:hover { text-decoration: underline; }
</style>
</head>
<body>

<header>
  <div class="header-inner">
    <div class="brand">
      <span class="logo">&#127820;</span>
      <h1>Banana Studio</h1>
    </div>
    <nav class="tabs">
      <button class="tab-btn active" data-tab="generator">Image Generator</button>
      <button class="tab-btn" data-tab="editor">Image Editor</button>
      <button class="tab-btn" data-tab="pro">Pro Studio</button>
    </nav>
  </div>
</header>

<main>

  <!-- ── Image Generator ── -->
  <section id="tab-generator" class="tab-panel active">
    <div class="grid-2">
      <div class="stack">
        <h2>Image Generator</h2>
        <p class="muted">Describe the image you want to create. Be as detailed as you like. Powered by __IMAGE_MODEL__.</p>
        <div>
          <div class="field-header">
            <label for="genPrompt">Your Prompt</label>
            <button id="genEnhance" class="link-btn" disabled>&#10024; Enhance Prompt</button>
          </div>
          <textarea id="genPrompt" placeholder="e.g., A cinematic shot of a raccoon in a tiny detective trench coat, exploring a futuristic city at night"></textarea>
        </div>
        <div>
          <label>Aspect Ratio</label>
          <div id="ratioGrid" class="ratio-grid" style="margin-top:8px"></div>
        </div>
        <button id="genSubmit" disabled>Generate Image</button>
        <div id="genError" class="error-text"></div>
        <div id="genStatus" class="status"></div>
      </div>
      <div class="stack">
        <div id="genPane" class="image-pane">Your generated image will appear here.</div>
        <a id="genDownload" class="download-link" download="generated-by-banana-studio.jpg">Download Image</a>
      </div>
    </div>
  </section>

  <!-- ── Image Editor ── -->
  <section id="tab-editor" class="tab-panel">
    <div class="stack">
      <div class="centered">
        <h2>Banana Studio Image Editor</h2>
        <p class="muted" style="margin-top:6px">Upload an image and tell me how you'd like to change it. Powered by __EDIT_MODEL__.</p>
      </div>

      <div class="stack" style="max-width:760px;width:100%;margin:0 auto">
        <div>
          <div class="field-header">
            <label for="editPrompt">Your Edit Prompt</label>
            <button id="editEnhance" class="link-btn" disabled>&#10024; Enhance Prompt</button>
          </div>
          <textarea id="editPrompt" placeholder="e.g., Add a retro filter, or remove the person in the background" disabled></textarea>
        </div>
        <div class="row">
          <label for="editFile" id="editFileLabel" class="upload-label">Upload Image</label>
          <input id="editFile" type="file" accept="image/*">
          <button id="editSubmit" disabled>Apply Edit</button>
        </div>
        <div id="editError" class="error-text"></div>
        <div id="editStatus" class="status"></div>

        <div id="editHistory" class="history">
          <h4>History</h4>
          <ul id="editHistoryList"></ul>
        </div>
      </div>

      <div class="grid-2">
        <div class="stack">
          <h4 class="centered">Original</h4>
          <div id="editOriginal" class="image-pane">Upload an image to start</div>
        </div>
        <div class="stack">
          <h4 class="centered">Edited</h4>
          <div id="editResult" class="image-pane">Your edited image will appear here</div>
          <a id="editDownload" class="download-link">Download This Edit</a>
        </div>
      </div>
    </div>
  </section>

  <!-- ── Pro Studio ── -->
  <section id="tab-pro" class="tab-panel">
    <div class="grid-2">
      <div class="card stack">
        <h3>Deep Thinking Mode</h3>
        <p class="muted">For your most complex queries. The AI will take more time to reason and provide a comprehensive response. Powered by __PRO_MODEL__.</p>
        <textarea id="thinkPrompt" placeholder="e.g., Write a Python script for a web app that visualizes real-time stock data..."></textarea>
        <button id="thinkSubmit" disabled>Engage Pro</button>
        <div id="thinkError" class="error-text"></div>
        <div id="thinkStatus" class="status"></div>
        <pre id="thinkOutput" class="output-card"></pre>
      </div>

      <div class="card stack">
        <h3>Grounded Web Search</h3>
        <p class="muted">Get up-to-date and accurate information from the web for your questions. Powered by __TEXT_MODEL__ with Google Search.</p>
        <textarea id="searchPrompt" placeholder="e.g., Who won the most medals at the last Olympics?"></textarea>
        <button id="searchSubmit" disabled>Search Web</button>
        <div id="searchError" class="error-text"></div>
        <div id="searchStatus" class="status"></div>
        <div id="searchOutput" class="output-card"></div>
        <div id="searchSources" class="sources">
          <h4>Sources</h4>
          <ul id="searchSourceList"></ul>
        </div>
      </div>
    </div>
  </section>

</main>

<footer>Powered by Google Gemini. UI designed for creativity and performance.</footer>

<script>
  const ASPECT_RATIOS = /*__ASPECT_RATIOS__*/;

  // ── Tabs ──
  document.querySelectorAll('.tab-btn').forEach(btn => {
    btn.addEventListener('click', () => {
      document.querySelectorAll('.tab-btn').forEach(b => b.classList.toggle('active', b === btn));
      document.querySelectorAll('.tab-panel').forEach(p => {
        p.classList.toggle('active', p.id === 'tab-' + btn.dataset.tab);
      });
    });
  });

  // ── Timer helper ──
  function createTimer(statusEl, label) {
    let interval = null;
    return {
      start() {
        const t0 = Date.now();
        clearInterval(interval);
        interval = setInterval(() => {
          const s = ((Date.now() - t0) / 1000).toFixed(1);
          statusEl.innerHTML = '<span class="timer">' + s + 's</span> ' + label;
        }, 100);
      },
      stop() { clearInterval(interval); interval = null; statusEl.textContent = ''; },
      done(elapsed) {
        this.stop();
        statusEl.innerHTML = 'Completed in <span class="timer">' + elapsed + 's</span>';
      }
    };
  }

  // ── API call helpers ──
  async function readJson(res) {
    let data = {};
    try { data = await res.json(); } catch (e) { /* non-JSON error page */ }
    if (!res.ok || data.error) throw new Error(data.error || 'HTTP ' + res.status);
    return data;
  }

  async function postJson(url, body) {
    const res = await fetch(url, {
      method: 'POST',
      headers: { 'Content-Type': 'application/json' },
      body: JSON.stringify(body),
    });
    return readJson(res);
  }

  function setImage(pane, src, alt) {
    pane.innerHTML = '';
    const img = document.createElement('img');
    img.src = src;
    img.alt = alt;
    pane.appendChild(img);
  }

  function setLoading(pane, text) {
    pane.innerHTML = '<div class="loading"><div class="spinner"></div>' + text + '</div>';
  }

  function bindShortcut(textarea, action) {
    textarea.addEventListener('keydown', e => {
      if (e.key === 'Enter' && (e.metaKey || e.ctrlKey)) { e.preventDefault(); action(); }
    });
  }

  // ═══════════════════════════════════
  // Image Generator
  // ═══════════════════════════════════
  const gen = {
    prompt: document.getElementById('genPrompt'),
    enhance: document.getElementById('genEnhance'),
    submit: document.getElementById('genSubmit'),
    error: document.getElementById('genError'),
    pane: document.getElementById('genPane'),
    download: document.getElementById('genDownload'),
    ratioGrid: document.getElementById('ratioGrid'),
    aspectRatio: ASPECT_RATIOS[0],
    loading: false,
    enhancing: false,
  };
  gen.timer = createTimer(document.getElementById('genStatus'), 'generating...');

  ASPECT_RATIOS.forEach(ar => {
    const btn = document.createElement('button');
    btn.className = 'ratio-btn' + (ar === gen.aspectRatio ? ' active' : '');
    btn.textContent = ar;
    btn.addEventListener('click', () => {
      gen.aspectRatio = ar;
      gen.ratioGrid.querySelectorAll('.ratio-btn').forEach(b => b.classList.toggle('active', b === btn));
    });
    gen.ratioGrid.appendChild(btn);
  });

  function syncGenerator() {
    const hasPrompt = gen.prompt.value.trim().length > 0;
    gen.prompt.disabled = gen.loading || gen.enhancing;
    gen.enhance.disabled = !hasPrompt || gen.enhancing || gen.loading;
    gen.enhance.innerHTML = gen.enhancing ? 'Enhancing...' : '&#10024; Enhance Prompt';
    gen.submit.disabled = !hasPrompt || gen.loading || gen.enhancing;
    gen.submit.textContent = gen.loading ? 'Generating...' : 'Generate Image';
    gen.ratioGrid.querySelectorAll('.ratio-btn').forEach(b => b.disabled = gen.loading);
  }

  async function enhanceInto(state, sync) {
    const prompt = state.prompt.value.trim();
    if (!prompt || state.enhancing) return;
    state.enhancing = true;
    state.error.textContent = '';
    sync();
    try {
      const data = await postJson('/api/enhance-prompt', { prompt });
      state.prompt.value = data.text;
    } catch (e) {
      state.error.textContent = e.message;
    } finally {
      state.enhancing = false;
      sync();
    }
  }

  async function generateImage() {
    const prompt = gen.prompt.value.trim();
    if (!prompt) { gen.error.textContent = 'Please enter a prompt.'; return; }
    if (gen.loading) return;

    gen.loading = true;
    gen.error.textContent = '';
    gen.download.classList.remove('visible');
    setLoading(gen.pane, 'Generating your masterpiece...');
    gen.timer.start();
    syncGenerator();

    try {
      const data = await postJson('/api/generate-image', { prompt, aspect_ratio: gen.aspectRatio });
      setImage(gen.pane, data.image, 'Generated art');
      gen.download.href = data.image;
      gen.download.download = 'generated-by-banana-studio.' + (data.extension || 'jpg');
      gen.download.classList.add('visible');
      gen.timer.done(data.elapsed);
    } catch (e) {
      gen.timer.stop();
      gen.pane.textContent = 'Your generated image will appear here.';
      gen.error.textContent = e.message;
    } finally {
      gen.loading = false;
      syncGenerator();
    }
  }

  gen.prompt.addEventListener('input', syncGenerator);
  gen.enhance.addEventListener('click', () => enhanceInto(gen, syncGenerator));
  gen.submit.addEventListener('click', generateImage);
  bindShortcut(gen.prompt, generateImage);

  // ═══════════════════════════════════
  // Image Editor
  // ═══════════════════════════════════
  const ed = {
    prompt: document.getElementById('editPrompt'),
    enhance: document.getElementById('editEnhance'),
    submit: document.getElementById('editSubmit'),
    file: document.getElementById('editFile'),
    fileLabel: document.getElementById('editFileLabel'),
    error: document.getElementById('editError'),
    history: document.getElementById('editHistory'),
    historyList: document.getElementById('editHistoryList'),
    original: document.getElementById('editOriginal'),
    result: document.getElementById('editResult'),
    download: document.getElementById('editDownload'),
    state: { has_image: false, entries: [], active_index: 0 },
    loading: false,
    enhancing: false,
  };
  ed.timer = createTimer(document.getElementById('editStatus'), 'editing...');

  function syncEditor() {
    const hasPrompt = ed.prompt.value.trim().length > 0;
    const hasImage = ed.state.has_image;
    ed.prompt.disabled = ed.loading || ed.enhancing || !hasImage;
    ed.enhance.disabled = !hasPrompt || ed.enhancing || ed.loading;
    ed.enhance.innerHTML = ed.enhancing ? 'Enhancing...' : '&#10024; Enhance Prompt';
    ed.submit.disabled = !hasPrompt || !hasImage || ed.loading || ed.enhancing;
    ed.submit.textContent = ed.loading ? 'Editing...' : 'Apply Edit';
  }

  function renderEditor() {
    const s = ed.state;
    ed.fileLabel.textContent = s.has_image ? 'Selected: ' + (s.filename || 'image') : 'Upload Image';

    if (s.original_url) setImage(ed.original, s.original_url, 'Original');
    else ed.original.textContent = 'Upload an image to start';

    if (ed.loading) {
      setLoading(ed.result, 'Editing in progress...');
    } else if (s.edited_url) {
      setImage(ed.result, s.edited_url, 'Edited');
    } else {
      ed.result.textContent = 'Your edited image will appear here';
    }

    if (!ed.loading && s.edited_url) {
      ed.download.href = s.edited_url + '&download=1';
      ed.download.classList.add('visible');
    } else {
      ed.download.classList.remove('visible');
    }

    ed.historyList.innerHTML = '';
    ed.history.classList.toggle('visible', s.entries.length > 1);
    s.entries.forEach(item => {
      const li = document.createElement('li');
      const btn = document.createElement('button');
      btn.className = 'history-btn' + (item.index === s.active_index ? ' active' : '');
      btn.textContent = item.prompt;
      btn.title = item.prompt;
      btn.addEventListener('click', () => selectHistory(item.index));
      li.appendChild(btn);
      ed.historyList.appendChild(li);
    });

    syncEditor();
  }

  async function loadHistory() {
    const res = await fetch('/api/editor/history');
    ed.state = await readJson(res);
    renderEditor();
  }

  async function uploadImage() {
    const file = ed.file.files[0];
    if (!file) return;
    const form = new FormData();
    form.append('image', file);
    ed.error.textContent = '';
    try {
      const res = await fetch('/api/editor/upload', { method: 'POST', body: form });
      ed.state = await readJson(res);
      ed.prompt.value = '';
    } catch (e) {
      ed.error.textContent = e.message;
    } finally {
      ed.file.value = '';
      renderEditor();
    }
  }

  async function selectHistory(index) {
    try {
      ed.state = await postJson('/api/editor/select', { index });
    } catch (e) {
      ed.error.textContent = e.message;
    }
    renderEditor();
  }

  async function applyEdit() {
    const prompt = ed.prompt.value.trim();
    if (!prompt || !ed.state.has_image) {
      ed.error.textContent = 'Please upload an image and provide an edit prompt.';
      return;
    }
    if (ed.loading) return;

    ed.loading = true;
    ed.error.textContent = '';
    ed.timer.start();
    renderEditor();

    try {
      const data = await postJson('/api/editor/edit', { prompt });
      ed.state = data;
      ed.prompt.value = '';
      ed.timer.done(data.elapsed);
    } catch (e) {
      ed.timer.stop();
      ed.error.textContent = e.message;
    } finally {
      ed.loading = false;
      renderEditor();
    }
  }

  ed.prompt.addEventListener('input', syncEditor);
  ed.enhance.addEventListener('click', () => enhanceInto(ed, syncEditor));
  ed.file.addEventListener('change', uploadImage);
  ed.submit.addEventListener('click', applyEdit);
  bindShortcut(ed.prompt, applyEdit);

  // ═══════════════════════════════════
  // Pro Studio
  // ═══════════════════════════════════
  function proPanel(prefix, url, runningLabel, submitLabel, render) {
    const panel = {
      prompt: document.getElementById(prefix + 'Prompt'),
      submit: document.getElementById(prefix + 'Submit'),
      error: document.getElementById(prefix + 'Error'),
      output: document.getElementById(prefix + 'Output'),
      timer: createTimer(document.getElementById(prefix + 'Status'), runningLabel),
      loading: false,
    };

    function sync() {
      panel.prompt.disabled = panel.loading;
      panel.submit.disabled = panel.loading || !panel.prompt.value.trim();
      panel.submit.textContent = panel.loading ? 'Working...' : submitLabel;
    }

    async function run() {
      const prompt = panel.prompt.value.trim();
      if (!prompt || panel.loading) return;
      panel.loading = true;
      panel.error.textContent = '';
      render(panel, null);
      panel.timer.start();
      sync();
      try {
        const data = await postJson(url, { prompt });
        render(panel, data);
        panel.timer.done(data.elapsed);
      } catch (e) {
        panel.timer.stop();
        panel.error.textContent = e.message;
      } finally {
        panel.loading = false;
        sync();
      }
    }

    panel.prompt.addEventListener('input', sync);
    panel.submit.addEventListener('click', run);
    bindShortcut(panel.prompt, run);
    return panel;
  }

  proPanel('think', '/api/pro/think', 'thinking...', 'Engage Pro', (panel, data) => {
    const text = data ? data.text : '';
    panel.output.textContent = text;
    panel.output.classList.toggle('visible', !!text);
  });

  const sourcesEl = document.getElementById('searchSources');
  const sourceListEl = document.getElementById('searchSourceList');
  proPanel('search', '/api/pro/search', 'searching...', 'Search Web', (panel, data) => {
    const text = data ? data.text : '';
    const sources = data ? data.sources : [];
    panel.output.textContent = text;
    panel.output.classList.toggle('visible', !!text);
    sourceListEl.innerHTML = '';
    sources.forEach(src => {
      const li = document.createElement('li');
      const a = document.createElement('a');
      a.href = src.uri;
      a.target = '_blank';
      a.rel = 'noopener noreferrer';
      a.textContent = src.title;
      li.appendChild(a);
      sourceListEl.appendChild(li);
    });
    sourcesEl.classList.toggle('visible', !!text && sources.length > 0);
  });

  syncGenerator();
  loadHistory().catch(e => { ed.error.textContent = e.message; });
</script>
</body>
</html>
"""


def main():
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = create_app(settings)
    app.run(debug=settings.debug, port=settings.port, threaded=True)


if __name__ == "__main__":
    main()
