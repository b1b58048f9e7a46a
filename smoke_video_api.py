"""
Manual smoke test for a running video generation server.

Exercises every generation mode against the real Veo API, then extends the
first generated clip with the handle it returned:
1. References to video
2. Frames to video (looping)
3. Extend video

Usage:
    python app.py                      # in one shell
    python smoke_video_api.py [URL]    # in another
"""
import base64
import sys
from io import BytesIO

import requests
from PIL import Image

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
TIMEOUT = 900  # generations take minutes; allow for one retry


def create_test_image(color=(255, 0, 0), size=(512, 512)):
    """Create a simple test image and return base64 encoded data."""
    img = Image.new('RGB', size, color=color)
    buffer = BytesIO()
    img.save(buffer, format='PNG')
    return base64.b64encode(buffer.getvalue()).decode('utf-8')


def _post(title, payload):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)

    response = requests.post(f"{BASE_URL}/api/videos/generate", json=payload, timeout=TIMEOUT)
    if response.status_code == 200:
        result = response.json()
        print("✓ Success!")
        print(f"  Video URL: {BASE_URL}{result['video_url']}")
        print(f"  Attempts: {result['attempts']}")
        print(f"  Message: {result['message']}")
        return result

    print(f"✗ Failed: {response.status_code}")
    print(f"  Error: {response.text}")
    return None


def smoke_references_to_video():
    return _post("SMOKE 1: References to Video", {
        "prompt": "A man hiking along a mountain ridge at sunrise",
        "mode": "references_to_video",
        "reference_images": [{"mime_type": "image/png", "data": create_test_image(color=(0, 255, 0))}],
        "style_image": {"mime_type": "image/png", "data": create_test_image(color=(255, 255, 0))},
    })


def smoke_frames_to_video():
    return _post("SMOKE 2: Frames to Video (looping)", {
        "prompt": "A slowly pulsing red glow",
        "mode": "frames_to_video",
        "start_frame": {"mime_type": "image/png", "data": create_test_image(color=(255, 0, 0))},
        "is_looping": True,
    })


def smoke_extend_video(previous):
    if not previous:
        print("\n✗ Extend skipped: no handle from a previous generation")
        return None
    return _post("SMOKE 3: Extend Video", {
        "prompt": "Continue the scene as clouds roll in",
        "mode": "extend_video",
        "input_video": previous["handle"],
    })


def main():
    print("=" * 60)
    print("Video Generation API Smoke Test")
    print("=" * 60)
    print("\nNote: Each video generation can take 2-5 minutes...")

    first = None
    for step in (smoke_references_to_video, smoke_frames_to_video):
        try:
            result = step()
            first = first or result
        except requests.exceptions.Timeout:
            print("\n✗ Request timed out")
        except requests.exceptions.RequestException as e:
            print(f"\n✗ Request failed: {e}")

    try:
        smoke_extend_video(first)
    except requests.exceptions.RequestException as e:
        print(f"\n✗ Request failed: {e}")

    print("\n" + "=" * 60)
    print("Smoke test completed!")
    print("=" * 60)


if __name__ == "__main__":
    main()
