"""
smoke_api.py - Manual smoke run against a live scheduler API

Run the backend first with: python run.py
Seed a school with:         python seed_data.py
Then run this script:       python smoke_api.py [school_id]
"""

import json
import sys
import time
from datetime import datetime

import requests

BASE_URL = "http://localhost:8000/api/timetable"


def print_section(title):
    """Print section header"""
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


def check_health():
    print_section("HEALTH CHECK")
    try:
        response = requests.get("http://localhost:8000/health", timeout=5)
        if response.status_code == 200:
            print("✅ Server is running!")
            print(json.dumps(response.json(), indent=2))
            return True
        print(f"❌ Server returned {response.status_code}")
        return False
    except requests.ConnectionError:
        print("❌ Cannot connect to server. Make sure it's running on http://localhost:8000")
        return False


def check_generate(school_id):
    print_section("GENERATE TIMETABLE")
    payload = {"school_id": school_id}
    print(f"Request payload: {json.dumps(payload, indent=2)}")

    try:
        response = requests.post(f"{BASE_URL}/generate", json=payload, timeout=120)
    except requests.Timeout:
        print("❌ Request timed out. Generation may be taking long.")
        return False

    result = response.json()
    print(json.dumps(result, indent=2))
    if response.status_code == 200 and result.get("success"):
        print(f"✅ Generated {result['entries_created']} entries ({result['version']})")
        return True
    print("❌ Generation failed")
    return False


def check_detailed_timetable(school_id):
    print_section("DETAILED TIMETABLE")
    response = requests.get(f"{BASE_URL}/detailed", params={"school_id": school_id}, timeout=10)
    if response.status_code != 200:
        print(f"❌ Error: {response.status_code}")
        print(response.json())
        return False

    entries = response.json()
    print(f"Total entries: {len(entries)}")

    by_class = {}
    for entry in entries:
        by_class.setdefault(entry["class_label"], []).append(entry)

    for label, class_entries in sorted(by_class.items()):
        print(f"\n  Class {label}:")
        for entry in sorted(class_entries, key=lambda e: (e["day"], e["period"]))[:8]:
            print(f"    {entry['day']:<10} P{entry['period']}: {entry['subject_name']} - {entry['teacher_name']}")
        if len(class_entries) > 8:
            print(f"    ... and {len(class_entries) - 8} more")
    return True


def check_validate(school_id):
    print_section("VALIDATE TIMETABLE")
    response = requests.get(f"{BASE_URL}/validate", params={"school_id": school_id}, timeout=30)
    if response.status_code != 200:
        print(f"❌ Error: {response.status_code}")
        return False

    result = response.json()
    print(f"Is valid: {result['is_valid']}")
    for conflict in result["conflicts"][:10]:
        print(f"  - {conflict}")
    if len(result["conflicts"]) > 10:
        print(f"  ... and {len(result['conflicts']) - 10} more")
    return True


def check_suggestions(school_id):
    print_section("OPTIMIZATION SUGGESTIONS")
    response = requests.get(f"{BASE_URL}/suggestions", params={"school_id": school_id}, timeout=30)
    if response.status_code != 200:
        print(f"❌ Error: {response.status_code}")
        return False
    for suggestion in response.json()["suggestions"]:
        print(f"  • {suggestion}")
    return True


def main():
    school_id = int(sys.argv[1]) if len(sys.argv) > 1 else 1

    print("\n" + "="*70)
    print("  SCHOOL TIMETABLE SCHEDULER - API SMOKE RUN")
    print("="*70)
    print(f"\nStarted at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Backend URL: {BASE_URL}")

    if not check_health():
        print("\n" + "!"*70)
        print("  Cannot proceed without server. Please start the backend:")
        print("  python run.py")
        print("!"*70)
        return

    checks = [
        ("Generate Timetable", check_generate),
        ("Detailed Timetable", check_detailed_timetable),
        ("Validate Timetable", check_validate),
        ("Optimization Suggestions", check_suggestions),
    ]

    results = {}
    for name, check in checks:
        try:
            results[name] = check(school_id)
        except Exception as e:
            print(f"❌ Error running check: {str(e)}")
            results[name] = False
        time.sleep(0.5)

    print_section("SUMMARY")
    passed = sum(1 for v in results.values() if v)
    for name, result in results.items():
        status = "✅ PASS" if result else "❌ FAIL"
        print(f"{status}: {name}")
    print(f"\nTotal: {passed}/{len(results)} passed")
    print("="*70 + "\n")


if __name__ == "__main__":
    main()
