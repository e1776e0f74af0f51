"""Browser page for the assistant, served at ``/``.

Conversation state, attachments and the last parsed email metadata live in
the page only; export buttons post the conversation to ``/api/export``.
"""

BUSINESS_TYPES = ["決算締め処理", "税効果会計", "開示資料作成", "問い合わせ対応"]

TEMPLATE_QUESTIONS = [
    "決算の全体プロセスを整理して",
    "税効果会計の主要論点を整理して",
    "このメールへの返信案を作って（問い合わせ対応）",
]

MODES = [("review", "ドラフト"), ("summary", "レビュー"), ("anomaly", "要約")]

ACCEPTED_EXTENSIONS = ".pdf,.docx,.xlsx,.xls,.pptx,.eml,.msg,.txt"


def _buttons(items, css_class: str) -> str:
    return "\n".join(
        f'<button type="button" class="{css_class}" data-value="{v}">{v}</button>' for v in items
    )


def _options(items) -> str:
    return "\n".join(f'<option value="{value}">{label}</option>' for value, label in items)


_PAGE = """<!DOCTYPE html>
<html lang="ja">
<head>
<meta charset="utf-8">
<title>決算サポートAI</title>
<style>
* { box-sizing: border-box; }
body { margin: 0; height: 100vh; font-family: -apple-system, "Segoe UI", Meiryo, sans-serif; font-size: 14px; color: #111; }
.layout { display: flex; gap: 16px; height: 100%; padding: 16px; }
aside { width: 280px; overflow-y: auto; background: #f3f4f6; border: 1px solid #d1d5db; border-radius: 16px; padding: 16px; }
aside h2 { font-size: 15px; margin: 16px 0 8px; }
aside button { display: block; width: 100%; text-align: left; margin-bottom: 6px; padding: 8px 12px; border: 1px solid #d1d5db; border-radius: 6px; background: #fff; cursor: pointer; }
aside button.active { background: #2563eb; color: #fff; border-color: #3b82f6; }
select { width: 100%; padding: 8px; border-radius: 6px; border: 1px solid #d1d5db; }
#dropzone { border: 2px dashed #9ca3af; border-radius: 8px; padding: 16px; text-align: center; background: #fff; cursor: pointer; }
#dropzone.dragging { border-color: #2563eb; background: #eff6ff; }
#file-list { list-style: none; padding: 0; margin: 8px 0 0; font-size: 12px; }
main { flex: 1; display: flex; flex-direction: column; border: 1px solid #d1d5db; border-radius: 16px; overflow: hidden; }
header { display: flex; justify-content: space-between; align-items: center; padding: 12px 16px; border-bottom: 1px solid #e5e7eb; }
#messages { flex: 1; overflow-y: auto; padding: 16px; }
.msg { max-width: 80%; margin-bottom: 12px; padding: 10px 14px; border-radius: 12px; white-space: pre-wrap; }
.msg.user { margin-left: auto; background: #2563eb; color: #fff; }
.msg.assistant { background: #f3f4f6; }
footer { border-top: 1px solid #e5e7eb; padding: 12px 16px; }
textarea { width: 100%; height: 80px; padding: 8px; border-radius: 8px; border: 1px solid #d1d5db; resize: vertical; }
.actions { display: flex; gap: 8px; margin-top: 8px; flex-wrap: wrap; }
.actions button { padding: 6px 12px; border-radius: 6px; border: 1px solid #d1d5db; background: #fff; cursor: pointer; }
#send { background: #2563eb; color: #fff; border-color: #2563eb; margin-left: auto; }
#send:disabled { opacity: .5; }
</style>
</head>
<body>
<div class="layout">
  <aside>
    <h2>業務カテゴリ</h2>
    <div id="business-types">
__BUSINESS_BUTTONS__
    </div>
    <h2>テンプレート質問</h2>
    <div id="templates">
__TEMPLATE_BUTTONS__
    </div>
    <h2>モード</h2>
    <select id="mode">
__MODE_OPTIONS__
    </select>
    <h2>ファイルアップロード</h2>
    <div id="dropzone">ここにファイルをドラッグ＆ドロップ<br>またはクリックして選択</div>
    <input id="file-input" type="file" multiple accept="__ACCEPT__" hidden>
    <ul id="file-list"></ul>
  </aside>
  <main>
    <header>
      <strong>決算サポートAI</strong>
      <span id="current-business-type"></span>
    </header>
    <div id="messages"></div>
    <footer>
      <textarea id="input" placeholder="質問を入力（Enterで送信 / Shift+Enterで改行）"></textarea>
      <div class="actions">
        <button type="button" data-export="word">Word出力</button>
        <button type="button" data-export="excel">Excel出力</button>
        <button type="button" data-export="csv">CSV出力</button>
        <button type="button" data-export="pptx">PowerPoint出力</button>
        <button type="button" data-export="eml">Outlook用(.eml)</button>
        <button type="button" id="send">送信</button>
      </div>
    </footer>
  </main>
</div>
<script>
const state = { businessType: "__DEFAULT_BUSINESS__", messages: [], files: [], emailMeta: null, loading: false };

const $ = (sel) => document.querySelector(sel);

function renderMessages() {
  const box = $("#messages");
  box.innerHTML = "";
  for (const m of state.messages) {
    const div = document.createElement("div");
    div.className = "msg " + m.role;
    div.textContent = m.content;
    box.appendChild(div);
  }
  if (state.loading) {
    const div = document.createElement("div");
    div.className = "msg assistant";
    div.textContent = "回答を作成しています…";
    box.appendChild(div);
  }
  box.scrollTop = box.scrollHeight;
}

function renderFiles() {
  const list = $("#file-list");
  list.innerHTML = "";
  state.files.forEach((f, i) => {
    const li = document.createElement("li");
    li.textContent = f.name + " ";
    const rm = document.createElement("a");
    rm.href = "#";
    rm.textContent = "×";
    rm.onclick = (e) => { e.preventDefault(); state.files.splice(i, 1); renderFiles(); };
    li.appendChild(rm);
    list.appendChild(li);
  });
}

function renderBusinessType() {
  document.querySelectorAll("#business-types button").forEach((b) => {
    b.classList.toggle("active", b.dataset.value === state.businessType);
  });
  $("#current-business-type").textContent = state.businessType;
}

function addFiles(fileList) {
  for (const f of fileList) state.files.push(f);
  renderFiles();
}

async function send() {
  const text = $("#input").value;
  if (!text.trim() || state.loading) return;
  state.messages.push({ role: "user", content: text });
  $("#input").value = "";
  state.loading = true;
  $("#send").disabled = true;
  renderMessages();

  const form = new FormData();
  form.append("message", text);
  form.append("businessType", state.businessType);
  form.append("mode", $("#mode").value);
  state.files.forEach((f) => form.append("file", f));

  try {
    const res = await fetch("/api/chat", { method: "POST", body: form });
    const data = await res.json().catch(() => ({}));
    const reply = data.reply ?? (data.error ? data.error : "(応答なし または 解析に失敗しました)");
    state.emailMeta = data.emailMeta ?? null;
    state.messages.push({ role: "assistant", content: reply });
  } catch (err) {
    console.error(err);
    state.messages.push({ role: "assistant", content: "ネットワークエラーが発生しました。" });
  } finally {
    state.loading = false;
    $("#send").disabled = false;
    state.files = [];
    renderFiles();
    renderMessages();
  }
}

async function exportAs(fmt) {
  const res = await fetch("/api/export/" + fmt, {
    method: "POST",
    headers: { "Content-Type": "application/json" },
    body: JSON.stringify({ messages: state.messages, businessType: state.businessType, emailMeta: state.emailMeta }),
  });
  if (!res.ok) return;
  const disposition = res.headers.get("Content-Disposition") || "";
  const match = /filename\\*=UTF-8''([^;]+)/.exec(disposition);
  const a = document.createElement("a");
  a.href = URL.createObjectURL(await res.blob());
  a.download = match ? decodeURIComponent(match[1]) : "kessan-ai-answer";
  a.click();
  URL.revokeObjectURL(a.href);
}

document.querySelectorAll("#business-types button").forEach((b) => {
  b.onclick = () => { state.businessType = b.dataset.value; renderBusinessType(); };
});
document.querySelectorAll("#templates button").forEach((b) => {
  b.onclick = () => { $("#input").value = b.dataset.value; $("#input").focus(); };
});
document.querySelectorAll("[data-export]").forEach((b) => {
  b.onclick = () => exportAs(b.dataset.export);
});

const dz = $("#dropzone");
dz.onclick = () => $("#file-input").click();
dz.ondragover = (e) => { e.preventDefault(); dz.classList.add("dragging"); };
dz.ondragleave = (e) => { e.preventDefault(); dz.classList.remove("dragging"); };
dz.ondrop = (e) => { e.preventDefault(); dz.classList.remove("dragging"); addFiles(e.dataTransfer.files); };
$("#file-input").onchange = (e) => { addFiles(e.target.files); e.target.value = ""; };

$("#send").onclick = send;
$("#input").addEventListener("keydown", (e) => {
  if (e.key === "Enter" && !e.shiftKey && !e.isComposing) { e.preventDefault(); send(); }
});

renderBusinessType();
renderMessages();
</script>
</body>
</html>
"""


def render_index_html() -> str:
    return (
        _PAGE.replace("__BUSINESS_BUTTONS__", _buttons(BUSINESS_TYPES, "business-type"))
        .replace("__TEMPLATE_BUTTONS__", _buttons(TEMPLATE_QUESTIONS, "template"))
        .replace("__MODE_OPTIONS__", _options(MODES))
        .replace("__ACCEPT__", ACCEPTED_EXTENSIONS)
        .replace("__DEFAULT_BUSINESS__", BUSINESS_TYPES[0])
    )
