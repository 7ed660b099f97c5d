"""HTML for the student join page served at ``/``."""

from quizflow.constants.network_constants import MATHJAX_SCRIPT_URL

STUDENT_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>QuizFlow</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #0b1120; color: #f5f7ff; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; }
      .card { background: #111a30; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.5rem 1.5rem rgba(0, 0, 0, 0.4); }
      .hidden { display: none; }
      .question { border: 1px solid #1e293b; border-radius: 0.5rem; padding: 1rem; margin-bottom: 1rem; }
      .meta { color: #94a3b8; font-size: 0.9rem; }
      .correct { color: #4ade80; }
      .wrong { color: #f87171; }
      .primary-button { border: none; border-radius: 0.75rem; padding: 0.85rem 1.5rem; font-size: 1rem; background: #1f9aa5; color: #fff; cursor: pointer; }
      .primary-button:disabled { opacity: 0.6; cursor: not-allowed; }
      #toasts { position: fixed; bottom: 1rem; right: 1rem; display: flex; flex-direction: column; gap: 0.5rem; }
      .toast { background: #1e293b; padding: 0.75rem 1rem; border-radius: 0.5rem; }
      .toast.destructive { background: #7f1d1d; }
      textarea, input[type=text] { width: 100%; box-sizing: border-box; padding: 0.5rem; border-radius: 0.5rem; border: none; }
    </style>
    <script>
      window.MathJax = { tex: { inlineMath: [['$','$']], displayMath: [['$$','$$']] }, svg: { fontCache: 'global' } };
    </script>
    <script defer src="__MATHJAX__"></script>
  </head>
  <body>
    <h1 id="quiz-title">QuizFlow</h1>
    <section class="card" id="join-card">
      <label for="student-name">Student name (required)</label>
      <input id="student-name" type="text" placeholder="Type your name" />
      <p><button id="start-button" class="primary-button" disabled>Start quiz</button></p>
    </section>
    <section class="card hidden" id="exam-card">
      <div id="questions"></div>
      <button id="submit-button" class="primary-button">Submit answers</button>
    </section>
    <section class="card hidden" id="result-card">
      <div id="result-summary"></div>
      <p class="meta" id="countdown"></p>
      <div id="result-details"></div>
      <button id="close-button" class="primary-button">Close</button>
    </section>
    <div id="toasts"></div>
    <script>
      const params = new URLSearchParams(window.location.search);
      const quizId = params.get('quiz') || '';
      const nameInput = document.getElementById('student-name');
      const startButton = document.getElementById('start-button');
      const questionsEl = document.getElementById('questions');
      let questions = [];
      let pollHandle = null;

      function show(id, visible) { document.getElementById(id).classList.toggle('hidden', !visible); }

      function toast(items) {
        (items || []).forEach(item => {
          const el = document.createElement('div');
          el.className = 'toast ' + (item.variant || '');
          el.textContent = item.description ? `${item.title}: ${item.description}` : item.title;
          document.getElementById('toasts').appendChild(el);
          setTimeout(() => el.remove(), item.duration_ms || 5000);
        });
      }

      async function call(method, url, body) {
        const response = await fetch(url, {
          method,
          headers: { 'Content-Type': 'application/json' },
          body: body === undefined ? undefined : JSON.stringify(body),
        });
        const payload = await response.json().catch(() => ({}));
        const detail = payload.detail && typeof payload.detail === 'object' ? payload.detail : payload;
        toast(detail.notifications);
        if (detail.redirect) { window.location.replace(detail.redirect); }
        return { ok: response.ok, payload: detail };
      }

      function typeset() {
        if (window.MathJax && window.MathJax.typesetPromise) { window.MathJax.typesetPromise(); }
      }

      function renderQuestions() {
        questionsEl.innerHTML = '';
        if (questions.length === 0) {
          questionsEl.innerHTML = '<p class="meta">This quiz has no questions.</p>';
          return;
        }
        questions.forEach((q, index) => {
          const box = document.createElement('div');
          box.className = 'question';
          box.innerHTML = `<div class="meta">Question ${index + 1} &middot; ${q.points} point(s)</div>${q.content_html}`;
          if (q.type === 'multiple_choice') {
            q.options.forEach(option => {
              const label = document.createElement('label');
              const input = document.createElement('input');
              input.type = 'checkbox';
              input.addEventListener('change', () =>
                call('POST', `/api/exam/answers/${q.id}/toggle`, { option_id: option.id, selected: input.checked }));
              label.appendChild(input);
              label.insertAdjacentHTML('beforeend', ` ${option.content_html}`);
              box.appendChild(label);
              box.appendChild(document.createElement('br'));
            });
          } else if (q.type === 'true_false') {
            [true, false].forEach(value => {
              const label = document.createElement('label');
              const input = document.createElement('input');
              input.type = 'radio';
              input.name = `tf-${q.id}`;
              input.addEventListener('change', () =>
                call('PUT', `/api/exam/answers/${q.id}`, { type: 'true_false', value }));
              label.appendChild(input);
              label.append(value ? ' True ' : ' False ');
              box.appendChild(label);
            });
          } else {
            const area = document.createElement('textarea');
            area.rows = 4;
            area.addEventListener('change', () =>
              call('PUT', `/api/exam/answers/${q.id}`, { type: 'essay', text: area.value }));
            box.appendChild(area);
          }
          questionsEl.appendChild(box);
        });
        typeset();
      }

      function renderResult(result) {
        document.getElementById('result-summary').innerHTML =
          `<h2>${result.total_score} / ${result.total_points} points</h2><p>${result.percent}% &middot; ${result.grade}</p>`;
        const details = document.getElementById('result-details');
        details.innerHTML = '';
        result.by_question.forEach(item => {
          const q = questions.find(x => x.id === item.id);
          const status = item.is_correct === true ? ['correct', 'Correct'] : item.is_correct === false ? ['wrong', 'Incorrect'] : ['meta', 'Not graded'];
          const box = document.createElement('div');
          box.className = 'question';
          box.innerHTML = `<div class="${status[0]}">${status[1]}</div>${q ? q.content_html : ''}`;
          details.appendChild(box);
        });
        typeset();
      }

      async function pollSession() {
        const { ok, payload } = await call('GET', '/api/exam/session');
        if (!ok) { clearInterval(pollHandle); return; }
        if (payload.countdown_remaining !== null) {
          document.getElementById('countdown').textContent = `Closing automatically in ${payload.countdown_remaining} s`;
        }
      }

      nameInput.addEventListener('input', async () => {
        const { payload } = await call('POST', '/api/exam/name', { name: nameInput.value });
        startButton.disabled = !payload.can_start;
      });

      startButton.addEventListener('click', async () => {
        const { ok } = await call('POST', '/api/exam/start', { name: nameInput.value });
        if (!ok) return;
        show('join-card', false);
        show('exam-card', true);
        renderQuestions();
      });

      document.getElementById('submit-button').addEventListener('click', async () => {
        const { ok, payload } = await call('POST', '/api/exam/submit');
        if (!ok) return;
        show('exam-card', false);
        show('result-card', true);
        renderResult(payload.result);
        pollHandle = setInterval(pollSession, 1000);
      });

      document.getElementById('close-button').addEventListener('click', async () => {
        await call('DELETE', '/api/exam/session');
        window.location.replace('/');
      });

      (async () => {
        if (!quizId) {
          show('join-card', false);
        }
        const { ok, payload } = await call('GET', `/api/exam?quiz=${encodeURIComponent(quizId)}`);
        if (!ok) return;
        document.getElementById('quiz-title').textContent = `Quiz: ${payload.quiz.name}`;
        questions = payload.questions;
      })();
    </script>
  </body>
</html>
""".replace("__MATHJAX__", MATHJAX_SCRIPT_URL)
