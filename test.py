"""
OUTLET ASSISTANT TEST SCRIPT - Interactive chat client
======================================================

PURPOSE:
Command-line client for trying the text endpoints without the web frontend.
The conversation is kept here and sent in full with every request, the same
way the browser client does it.

USAGE:
    python test.py

    Make sure the server is running first: python run.py

COMMANDS:
    1 - Outlet approach assistant (/api/chat)
    2 - Kannada / English tutor (/api/kannada-chat)
    /feedback - Feedback report on your messages so far (/api/feedback)
    /history  - Show the conversation kept by this client
    /clear    - Start a new conversation
    /quit or /exit - Exit
"""

import requests


# -----------------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------------
BASE_URL = "http://localhost:8000"
MODES = {
    "outlet": ("/api/chat", "Outlet Assistant"),
    "kannada": ("/api/kannada-chat", "Tutor"),
}

MESSAGES = []
CURRENT_MODE = None


# -----------------------------------------------------------------------------
# UI HELPERS
# -----------------------------------------------------------------------------

def print_header():
    print("\n" + "="*60)
    print("🍦 Outlet Assistant - Text Chat")
    print("="*60)
    print("\nModes:")
    print("  1 = Outlet approach assistant")
    print("  2 = Kannada / English tutor")
    print("\nCommands:")
    print("  /feedback - Feedback on your messages")
    print("  /history - See conversation")
    print("  /clear - Start new conversation")
    print("  /quit - Exit")
    print("="*60 + "\n")


def get_user_input():
    try:
        return input("\nYou: ").strip()
    except (KeyboardInterrupt, EOFError):
        return None


def _error_text(response):
    """Readable error for a failed response (detail string or {error, details})."""
    try:
        detail = response.json().get("detail")
    except ValueError:
        return f"❌ Error: {response.status_code} - {response.text}"
    if isinstance(detail, str):
        return f"❌ {detail}"
    if isinstance(detail, dict):
        return f"❌ {detail.get('error')}: {detail.get('details', '')}"
    return f"❌ Error: {response.status_code} - {response.text}"


# -----------------------------------------------------------------------------
# API CALLS
# -----------------------------------------------------------------------------

def send_message(message, mode):
    """
    Append the message to the conversation, post the whole conversation to the
    mode's endpoint and store the reply. The message is dropped again if the
    request fails so the conversation stays consistent.
    """
    endpoint, _ = MODES[mode]
    MESSAGES.append({"role": "user", "content": message})

    try:
        response = requests.post(
            f"{BASE_URL}{endpoint}",
            json={"messages": MESSAGES, "userLanguage": "kannada"},
            timeout=60
        )
    except requests.exceptions.ConnectionError:
        MESSAGES.pop()
        return "❌ Cannot connect to backend. Start it with: python run.py"
    except requests.exceptions.Timeout:
        MESSAGES.pop()
        return "❌ Request timed out."

    if response.status_code != 200:
        MESSAGES.pop()
        return _error_text(response)

    data = response.json()
    text = data.get("text", "No response")
    MESSAGES.append({"role": "assistant", "content": text})
    if data.get("usedContext"):
        text += "\n   (answered with knowledge base context)"
    return text


def get_feedback():
    if not any(msg["role"] == "user" for msg in MESSAGES):
        return "No messages to analyze yet"

    try:
        response = requests.post(f"{BASE_URL}/api/feedback", json={"messages": MESSAGES}, timeout=60)
    except requests.exceptions.RequestException as e:
        return f"Error requesting feedback: {str(e)}"

    if response.status_code != 200:
        return _error_text(response)

    feedback = response.json().get("feedback", {})
    output = "\n📝 Feedback\n" + "-" * 60 + "\n"
    output += f"Overall: {feedback.get('overallScore')}/10\n"
    output += f"Grammar: {feedback.get('grammarAnalysis', {}).get('grammarScore')}/10\n"
    output += f"Vocabulary: {feedback.get('vocabularyAnalysis', {}).get('vocabularyScore')}/10\n"
    output += f"Fluency: {feedback.get('fluencyAssessment', {}).get('fluencyScore')}/10\n"
    for item in feedback.get("areasForImprovement", []):
        output += f"  - {item}\n"
    output += f"{feedback.get('encouragement', '')}\n"
    output += "-" * 60 + "\n"
    return output


def get_history():
    if not MESSAGES:
        return "No messages in this conversation"

    output = f"\n📜 Conversation ({len(MESSAGES)} messages):\n"
    output += "-" * 60 + "\n"
    for i, msg in enumerate(MESSAGES, 1):
        role = "You" if msg["role"] == "user" else "Assistant"
        output += f"{i}. {role}: {msg['content']}\n"
    output += "-" * 60 + "\n"
    return output


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def main():
    global CURRENT_MODE

    print_header()
    print("Select mode first (1=Outlet, 2=Tutor):\n")

    while True:
        user_input = get_user_input()
        if user_input is None or user_input in ["/quit", "/exit"]:
            print("\n👋 Goodbye!")
            break

        if user_input == "1":
            CURRENT_MODE = "outlet"
            print("✅ Switched to the outlet approach assistant\n")
            continue
        if user_input == "2":
            CURRENT_MODE = "kannada"
            print("✅ Switched to the Kannada / English tutor\n")
            continue
        if user_input == "/history":
            print(get_history())
            continue
        if user_input == "/feedback":
            print(get_feedback())
            continue
        if user_input == "/clear":
            MESSAGES.clear()
            print("\n🔄 Conversation cleared. Starting fresh!")
            continue
        if user_input.startswith("/"):
            print(f"❌ Unknown command: {user_input}")
            continue
        if not user_input:
            continue
        if not CURRENT_MODE:
            print("❌ Please select a mode first (1=Outlet or 2=Tutor)")
            continue

        _, label = MODES[CURRENT_MODE]
        print(f"🤖 {label}: ", end="", flush=True)
        print(send_message(user_input, CURRENT_MODE))


if __name__ == "__main__":
    main()
