"""Stand-in for the PaddleOCR-json executable used by the end-to-end tests.

conftest copies this file next to a shebang so it can be spawned directly.
Behaviour is selected with ``--fake-*`` arguments; the regular model
arguments are accepted and ignored like the real engine would use them.
"""

import base64
import binascii
import json
import os
import sys
import time

INIT_MARKER = "OCR init completed."


def _out(text, newline=True):
    sys.stdout.write(text + ("\n" if newline else ""))
    sys.stdout.flush()


def _reply(code, data):
    _out(json.dumps({"code": code, "data": data}, ensure_ascii=False))


def _record(text, score=0.98):
    return {"box": [[10, 10], [110, 10], [110, 40], [10, 40]], "score": score, "text": text}


def _options():
    opts = {}
    for arg in sys.argv[1:]:
        if arg.startswith("--fake-"):
            key, _, value = arg[len("--fake-"):].partition("=")
            opts[key] = value
    return opts


def _startup(mode):
    sys.stderr.write("W0101 fake engine warming up\n")
    sys.stderr.flush()
    if mode == "exit":
        sys.exit(3)
    if mode == "never":
        for i in range(50):
            _out(f"loading block {i}")
        while True:
            time.sleep(1)
    if mode == "banner":
        # old engines print the version banner without a line break
        _out("PaddleOCR-json v1.2.1", newline=False)
        return
    if mode == "silent":
        while True:
            time.sleep(1)
    _out("PaddleOCR-json v1.3.0")
    _out("Active code page: 65001")
    _out(INIT_MARKER)


def _handle(line, opts):
    if "reply" in opts:
        _out(opts["reply"])
        return
    if "hang" in opts:
        while True:
            time.sleep(1)
    if not line:
        _reply(200, 'Image path dose not exist. Path: ""')
        return
    try:
        request = json.loads(line)
    except ValueError:
        _reply(401, "Json parse failed.")
        return
    if "image_base64" in request:
        try:
            data = base64.b64decode(request["image_base64"], validate=True)
        except (binascii.Error, ValueError):
            _reply(300, "Base64 decode failed.")
            return
        _reply(100, [_record(f"{len(data)} bytes")])
        return
    path = request.get("image_path")
    if path is None:
        _reply(403, "No valid task.")
    elif path == "clipboard":
        _reply(212, "Clipboard format is not valid.")
    elif path == "__cwd__":
        _reply(100, [_record(os.getcwd())])
    elif path == "__args__":
        _reply(100, [_record(json.dumps(sys.argv[1:]))])
    elif path == "__multi__":
        _reply(100, [_record("第一行", 0.91), _record("second 😀", 0.5), _record("3", 1)])
    elif not os.path.exists(path):
        _reply(200, f'Image path dose not exist. Path: "{path}"')
    elif os.path.getsize(path) == 0:
        _reply(101, "No text found in image. Path: \"%s\"" % path)
    else:
        with open(path, "rb") as fh:
            _reply(100, [_record(fh.read().decode("utf-8", "replace").strip())])


def main():
    sys.stdin.reconfigure(encoding="utf-8")
    sys.stdout.reconfigure(encoding="utf-8")
    opts = _options()
    _startup(opts.get("ready", "marker"))
    for raw in sys.stdin:
        _handle(raw.rstrip("\r\n"), opts)


if __name__ == "__main__":
    main()
