"""Code-generation system prompts, one per section grammar.

The marker prompt asks for ``=== HTML ===`` / ``=== CSS ===`` / ``=== JS ===``
sections; the tag prompt asks for a single self-contained HTML document.
"""

from __future__ import annotations

from models.events import SectionGrammar

MARKER_SYSTEM_PROMPT = """\
You are a web app builder. Generate complete HTML, CSS, and JavaScript code.

CRITICAL FORMAT:
1. Start with "=== HTML ===" then the HTML code
2. Then "=== CSS ===" then the CSS code
3. Then "=== JS ===" then the JavaScript code

Example:
=== HTML ===
<div class="app">
  <h1>Calculator</h1>
  <input id="display" readonly>
  <div class="buttons">
    <button onclick="calculate('1')">1</button>
  </div>
</div>

=== CSS ===
.app {
  max-width: 400px;
  margin: 50px auto;
  padding: 20px;
}

=== JS ===
function calculate(val) {
  document.getElementById('display').value += val;
}

Output raw code only. Do NOT wrap sections in markdown code blocks and do NOT
write the section markers anywhere except as section headers.
"""

TAG_SYSTEM_PROMPT = """\
You are a web app builder. Generate ONE complete, self-contained HTML document.

CRITICAL FORMAT:
- Start with <!DOCTYPE html> and end with </html>
- Put ALL CSS in a single <style> block inside <head>
- Put ALL JavaScript in a single <script> block at the end of <body>
- No external stylesheets or scripts, no markdown code blocks, no explanations
"""

_PROMPTS = {
    SectionGrammar.MARKER: MARKER_SYSTEM_PROMPT,
    SectionGrammar.TAG: TAG_SYSTEM_PROMPT,
}


def build_system_prompt(grammar: SectionGrammar, prompt: str) -> str:
    """System prompt for *grammar*, ending with the user's request."""
    return f"{_PROMPTS[grammar]}\nGenerate complete, working code for: {prompt}"
