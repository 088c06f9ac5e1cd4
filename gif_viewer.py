import logging
import sys
import tkinter as tk

from controller import Controller

WINDOW_TITLE = "GIF Viewer"
WINDOW_GEOMETRY = "800x600"
CANVAS_WIDTH = 600
CANVAS_HEIGHT = 350

def build_ui(root: tk.Tk) -> tuple[dict, dict]:
    root.title(WINDOW_TITLE)
    root.geometry(WINDOW_GEOMETRY)
    root.resizable(True, True)

    top_frame = tk.Frame(root); top_frame.pack(fill="x", padx=10, pady=(10, 6))
    canvas = tk.Canvas(top_frame, width=CANVAS_WIDTH, height=CANVAS_HEIGHT, bg="grey"); canvas.pack(fill="x")

    controls_frame = tk.Frame(root); controls_frame.pack(fill="x", padx=10, pady=(0, 10))
    tk.Label(controls_frame, text="File Path:").grid(row=0, column=0, padx=(0, 8), pady=5, sticky="w")
    file_path_entry = tk.Entry(controls_frame); file_path_entry.grid(row=0, column=1, padx=0, pady=5, sticky="ew")
    browse_btn = tk.Button(controls_frame, text="Browse")
    browse_btn.grid(row=0, column=2, padx=(8, 0), pady=5, sticky="w")
    controls_frame.columnconfigure(1, weight=1)

    grid_frame = tk.Frame(root); grid_frame.pack(fill="x", padx=10, pady=(0, 8))
    tkvars = {}
    labels = (
        ("Width:", "width_var"),
        ("Height:", "height_var"),
        ("Loop Count:", "loop_var"),
        ("Frame:", "frame_var"),
        ("Delay (ms):", "delay_var"),
    )
    for i, (text, name) in enumerate(labels):
        tk.Label(grid_frame, text=text).grid(row=0, column=2 * i, sticky="e", padx=5, pady=5)
        tkvars[name] = tk.StringVar(value="—")
        tk.Label(grid_frame, textvariable=tkvars[name]).grid(row=0, column=2 * i + 1, sticky="w", padx=5, pady=5)

    tk.Label(grid_frame, text="Comment:").grid(row=1, column=0, sticky="e", padx=5, pady=5)
    tkvars["comment_var"] = tk.StringVar(value="—")
    tk.Label(grid_frame, textvariable=tkvars["comment_var"], anchor="w").grid(row=1, column=1, columnspan=9, sticky="w", padx=5, pady=5)

    playback_frame = tk.LabelFrame(root, text="Frames")
    playback_frame.pack(fill="x", padx=10, pady=(0, 10))
    next_btn = tk.Button(playback_frame, text="Next Frame")
    next_btn.grid(row=0, column=0, padx=(0, 8), pady=8, sticky="w")
    rewind_btn = tk.Button(playback_frame, text="Rewind")
    rewind_btn.grid(row=0, column=1, padx=(0, 8), pady=8, sticky="w")

    widgets = {
        "canvas": canvas,
        "file_path_entry": file_path_entry,
        "browse_btn": browse_btn,
        "next_btn": next_btn,
        "rewind_btn": rewind_btn,
    }
    return widgets, tkvars

def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root = tk.Tk()
    widgets, tkvars = build_ui(root)
    controller = Controller(root, widgets, tkvars)
    controller.bind_handlers()
    if len(sys.argv) > 1:
        controller.open_gif_file(sys.argv[1])
    root.mainloop()

if __name__ == "__main__":
    main()
