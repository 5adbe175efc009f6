"""
DEMO: Comment Analysis (Concise)
================================
Sends sample comments to a running API and prints a compact report:
expected verdict vs. actual, severity, categories and the suggested text.
"""
import httpx
import os
import sys

# Force UTF-8 output
sys.stdout.reconfigure(encoding='utf-8')

API = os.getenv("LAGO_API", "http://127.0.0.1:8787")

SAMPLES = [
    (False, "have a nice day"),
    (False, "Thanks for the detailed answer, it fixed my build."),
    (False, "I respectfully disagree with the conclusion here."),
    (True, "you are an idiot"),
    (True, "This is a bad and terrible idea, only a fool would ship it."),
    (True, "Shut up, nobody asked for your stupid opinion."),
]


def main():
    try:
        status = httpx.get(f"{API}/status", timeout=5).json()
        models = status["models"]
        print(f"Toxic: {models['toxic']} | Offensive: {models['offensive']} | Rewrite: {models['flanT5']}")
    except Exception as e:
        print(f"ERROR: API not reachable at {API} ({e})")
        sys.exit(1)

    print(f"{'EXPECTED':<10} {'GOT':<10} {'SEVERITY':<9} {'CATEGORIES':<32} TEXT -> SUGGESTION")
    print("-" * 100)

    correct = 0
    total = len(SAMPLES)

    for expected, text in SAMPLES:
        try:
            r = httpx.post(f"{API}/analyze", json={"text": text, "prefs": {}}, timeout=40)
            body = r.json()
            if not body.get("ok"):
                raise RuntimeError(body.get("error", f"HTTP {r.status_code}"))
            data = body["data"]

            verdict = data["classification"]["is_offensive"]
            is_correct = verdict == expected
            if is_correct:
                correct += 1

            status = " " if is_correct else "!"
            label = data["suggestions"][0]["label"] if data["suggestions"] else "-"
            cats = ",".join(data["classification"]["categories"]) or "-"
            print(
                f"{status}{'offensive' if expected else 'friendly':<9} "
                f"{'offensive' if verdict else 'friendly':<10} "
                f"{data['classification']['severity']:<9} {cats:<32} "
                f"{text[:25]}... -> [{label}] {data['final_suggestion'][:40]}"
            )

        except Exception as e:
            print(f"!{'offensive' if expected else 'friendly':<9} ERROR      {str(e)[:60]}")

    print("-" * 100)
    print(f"Agreement: {correct}/{total} ({correct / total:.0%})")


if __name__ == "__main__":
    main()
