"""
Demo: Evidence-Gated Thinking Loop

This script walks through the ThinkGate loop with simulated executor
results:
1. Think about the task
2. Feed in explored evidence
3. Reflect on results and decide
4. Recover from an error result
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from thinkgate import EvidenceDraft, build_session
from thinkgate.tools.formatting import format_intelligent_history, pct


def simulate_exploration_data(store):
    """Evidence that would normally come from real file/search actions."""
    store.add_entry(EvidenceDraft(
        action_kind="read_file",
        query="package.json",
        result={
            "name": "my-app",
            "dependencies": {"express": "^4.18.0", "jsonwebtoken": "^9.0.0", "bcrypt": "^5.1.0"},
        },
        confidence=0.9,
        tags=["config", "dependencies"],
        file_path="package.json",
        action_params={"path": "package.json"},
    ))
    store.add_entry(EvidenceDraft(
        action_kind="search_files",
        query="login|auth",
        result=(
            "Found 5 matches in 3 files:\n- auth.js: login function\n"
            "- user.js: password validation\n- routes.js: /login endpoint"
        ),
        confidence=0.8,
        tags=["search", "auth"],
        relevance=0.9,
        action_params={"regex": "login|auth"},
    ))
    store.add_entry(EvidenceDraft(
        action_kind="list_files",
        query="src",
        result="src/\n├── auth.js\n├── user.js\n├── routes.js\n├── middleware/\n└── controllers/",
        confidence=0.95,
        tags=["structure", "files"],
        file_path="src",
        action_params={"path": "src", "recursive": False},
    ))
    store.add_entry(EvidenceDraft(
        action_kind="read_file",
        query="src/auth.js",
        result=(
            "const jwt = require('jsonwebtoken')\n"
            "const bcrypt = require('bcrypt')\n\n"
            "function login(username, password) {\n"
            "    return jwt.sign({ user: username }, 'secret')\n"
            "}\n\nmodule.exports = { login }"
        ),
        confidence=0.85,
        tags=["code", "auth", "jwt"],
        file_path="src/auth.js",
        relevance=0.95,
        action_params={"path": "src/auth.js"},
    ))


def demo_intelligent_thinking():
    """Full loop over pre-collected OAuth evidence."""
    print("=" * 60)
    print("INTELLIGENT THINKING DEMO")
    print("=" * 60)

    session = build_session()
    task = "Add OAuth 2.0 authentication to the existing login system"
    print(f"\nTask: {task}\n")

    session.initialize(task)
    simulate_exploration_data(session.store)

    result = session.think(max_iterations=8)

    print(f"Decision: {result.final_decision}")
    print(f"Confidence: {pct(result.confidence)}")
    print(f"Decided by: {result.decided_by.value}")
    print(f"Thoughts processed: {len(result.thought_process)}")

    print("\n" + format_intelligent_history(session.controller.context, session.controller.history))

    context = session.controller.context
    print("Conversation context:")
    print(f"- Iterations: {context.current_iteration}")
    print(f"- Current focus: {context.current_focus}")
    print(f"- Convergence: {pct(context.convergence_level)}")


def demo_step_by_step():
    """Gate consultation before and after each action."""
    print("=" * 60)
    print("STEP-BY-STEP DEMO")
    print("=" * 60)

    session = build_session()
    session.initialize("Add email validation to the registration forms")

    print("\n1. Consult the gate before searching")
    params = {"regex": "email|register"}
    decision = session.consult("search_files", params)
    print(f"   proceed={decision.proceed} confidence={pct(decision.confidence)}")

    print("\n2. Record the search result")
    analysis = session.record("search_files", params, "Found email validation in forms.js and validation.js")
    print(f"   insights: {analysis.insights}")

    print("\n3. Asking again hits the cache")
    decision = session.consult("search_files", params)
    print(f"   proceed={decision.proceed} reasoning={decision.reasoning}")

    print("\n4. Read the validator")
    session.record(
        "read_file",
        {"path": "validation.js"},
        "function validateEmail(email) {\n"
        "    const regex = /^[^\\s@]+@[^\\s@]+\\.[^\\s@]+$/\n"
        "    return regex.test(email)\n}",
    )

    print("\n5. Decide")
    result = session.think(max_iterations=3)
    print(f"   Decision: {result.final_decision}")
    print(f"   Confidence: {pct(result.confidence)}")


def demo_error_handling():
    """An error result is stored at low confidence and the loop still decides."""
    print("=" * 60)
    print("ERROR HANDLING DEMO")
    print("=" * 60)

    session = build_session()
    session.initialize("Fix the validation bug")
    analysis = session.record(
        "read_file",
        {"path": "src/validation.js"},
        "Error: property 'validate' not found on undefined",
    )
    print(f"Stored confidence of the failed read: {pct(analysis.entry.confidence)}")

    result = session.think(max_iterations=4)

    print(f"\nDecision: {result.final_decision}")
    print(f"Confidence: {pct(result.confidence)}")
    print(f"Decided by: {result.decided_by.value}")


if __name__ == "__main__":
    demo_intelligent_thinking()
    print()
    demo_step_by_step()
    print()
    demo_error_handling()
