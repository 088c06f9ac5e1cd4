import tkinter as tk
from tkinter import filedialog, messagebox
from PIL import ImageTk

from gif_errors import GifError
from gif_stream import read_sub_blocks
from extensions import ExtensionHooks
from gif import GifImage

class CommentCollector(ExtensionHooks):
    def __init__(self):
        self.comments: list[str] = []

    def comment(self, gif) -> None:
        text = b"".join(read_sub_blocks(gif.stream))
        self.comments.append(text.decode("latin-1"))

class Controller:
    def __init__(self, root: tk.Tk, widgets: dict, tkvars: dict):
        self.root = root
        self.w = widgets
        self.v = tkvars
        self.gif_image: GifImage | None = None
        self.path: str | None = None
        self.hooks = CommentCollector()

    def bind_handlers(self):
        self.w["browse_btn"]["command"] = self.browse_file
        self.w["next_btn"]["command"] = self.next_frame
        self.w["rewind_btn"]["command"] = self.rewind

    def show_message_on_canvas(self, message: str):
        canvas = self.w["canvas"]
        canvas.delete("all")
        canvas.create_text(
            int(canvas.winfo_width() or 600) // 2,
            int(canvas.winfo_height() or 350) // 2,
            text=message,
            fill="white",
            anchor="center",
        )

    def clear_frame_stats(self):
        self.v["frame_var"].set("—")
        self.v["delay_var"].set("—")
        self.v["comment_var"].set("—")

    def close_current(self):
        if self.gif_image:
            self.gif_image.close()
            self.gif_image = None

    def post_open_success(self, gif: GifImage, path: str):
        self.gif_image = gif
        self.path = path
        e = self.w["file_path_entry"]
        e.delete(0, tk.END)
        e.insert(0, path)
        self.v["width_var"].set(str(gif.width))
        self.v["height_var"].set(str(gif.height))
        self.clear_frame_stats()
        self.next_frame()

    def open_gif_file(self, path: str):
        self.close_current()
        self.hooks = CommentCollector()
        try:
            gif = GifImage.open(path, canvas_depth=24, hooks=self.hooks)
        except GifError as e:
            self.w["file_path_entry"].delete(0, tk.END)
            self.v["width_var"].set("—")
            self.v["height_var"].set("—")
            self.v["loop_var"].set("—")
            self.clear_frame_stats()
            self.show_message_on_canvas(f"Invalid GIF file:\n{e}")
            return
        except OSError as e:
            self.clear_frame_stats()
            messagebox.showerror("Open Error", f"Failed to open GIF:\n{e}")
            return

        self.post_open_success(gif, path)

    def browse_file(self):
        path = filedialog.askopenfilename(
            filetypes=[
                ("GIF Images", "*.gif"),
                ("All Files", "*.*"),
            ]
        )
        if not path:
            return
        self.open_gif_file(path)

    def next_frame(self):
        if not self.gif_image:
            messagebox.showwarning("No Image", "Open a GIF file first.")
            return

        gif = self.gif_image
        if not gif.get_frame():
            if gif.last_error is not None:
                messagebox.showerror("Decode Error", f"Frame {gif.frame_index + 1} could not be decoded:\n{gif.last_error}")
            else:
                self.show_message_on_canvas("End of animation")
            return

        self.v["frame_var"].set(str(gif.frame_index))
        self.v["delay_var"].set(str(gif.get_delay() * 10))
        self.v["loop_var"].set("∞" if gif.loop_count == 0 else str(gif.loop_count or "—"))
        if self.hooks.comments:
            self.v["comment_var"].set(self.hooks.comments[-1])
        self.display_frame(gif)

    def rewind(self):
        if not self.path:
            return
        # a fresh handle starts from a blank canvas
        self.open_gif_file(self.path)

    def display_frame(self, gif: GifImage):
        img = gif.to_image()
        photo = ImageTk.PhotoImage(img)
        canvas = self.w["canvas"]
        canvas.delete("all")
        canvas.config(width=gif.width, height=gif.height)
        canvas.image = photo
        canvas.create_image(0, 0, anchor="nw", image=photo)
