# =============================================================================
# gui.py
# ComparatorGUI: main window with two image slots, background analysis,
#                result cards (original / grayscale / edges + metrics),
#                similarity score, summary, CSV/PDF export, and a log pane.
# =============================================================================

import io
import logging
import threading
import queue
from pathlib import Path

import tkinter as tk
from tkinter import filedialog, ttk, messagebox
from PIL import Image, ImageTk, ImageDraw

from constants import IMG_EXTS
from models import AnalyzedImage, AnalysisResult
from analysis import analyze
from session import AnalysisSession, SessionState
from report import write_result_csv, generate_pdf_report

logger = logging.getLogger(__name__)

THUMB_SIZE = (150, 150)


class QueueLogHandler(logging.Handler):
    """Forwards log records into the GUI's log queue (drained on the Tk thread)."""

    def __init__(self, log_queue: queue.Queue):
        super().__init__()
        self.log_queue = log_queue
        self.setFormatter(logging.Formatter("%(levelname)s  %(message)s"))

    def emit(self, record):
        self.log_queue.put(self.format(record))


def _thumbnail(png_or_bytes: bytes) -> ImageTk.PhotoImage:
    with Image.open(io.BytesIO(png_or_bytes)) as im:
        im = im.convert("RGBA")
        im.thumbnail(THUMB_SIZE, Image.LANCZOS)
        return ImageTk.PhotoImage(im)


# =============================================================================
# RESULT CARD
# =============================================================================

class ImageCard:
    """Original / grayscale / edge thumbnails plus classification and metrics."""

    def __init__(self, parent: tk.Widget, title: str):
        self.frame = tk.LabelFrame(parent, text=title, padx=6, pady=4)
        self._refs  = []
        self._blank = tk.PhotoImage(width=THUMB_SIZE[0], height=THUMB_SIZE[1])

        thumbs = tk.Frame(self.frame)
        thumbs.pack()
        self.thumb_labels = []
        for col, caption in enumerate(("Original", "Grayscale", "Edges")):
            lbl = tk.Label(thumbs, bg="#222", image=self._blank)
            lbl.grid(row=0, column=col, padx=2)
            tk.Label(thumbs, text=caption, font=("", 8), fg="#555").grid(row=1, column=col)
            self.thumb_labels.append(lbl)

        self.class_label = tk.Label(self.frame, text="", font=("Courier", 12, "bold"),
                                    fg="#117A8B")
        self.class_label.pack(pady=(6, 2))
        self.metrics_label = tk.Label(self.frame, text="", font=("", 9), justify="left")
        self.metrics_label.pack(anchor="w")
        self.warn_label = tk.Label(self.frame, text="", font=("", 8), fg="#9A6B00")
        self.warn_label.pack(anchor="w")

    def show(self, original: bytes, img: AnalyzedImage):
        self._refs = [_thumbnail(original), _thumbnail(img.grayscale_png),
                      _thumbnail(img.edges_png)]
        for lbl, photo in zip(self.thumb_labels, self._refs):
            lbl.config(image=photo)
        m = img.metrics
        self.class_label.config(text=str(img.classification))
        self.metrics_label.config(text=(
            f"Brightness:   {m.brightness}\n"
            f"Contrast:     {m.contrast}\n"
            f"Edge density: {m.edge_density}%\n"
            f"Size:         {img.width}x{img.height}"))
        self.warn_label.config(
            text="Low contrast detected. This may affect analysis accuracy."
            if m.is_low_contrast else "")

    def clear(self):
        self._refs = []
        for lbl in self.thumb_labels:
            lbl.config(image=self._blank)
        self.class_label.config(text="")
        self.metrics_label.config(text="")
        self.warn_label.config(text="")


# =============================================================================
# MAIN APPLICATION WINDOW
# =============================================================================

class ComparatorGUI:
    def __init__(self):
        self.root = tk.Tk()
        self.root.title("Image Pair Comparator")
        self.root.resizable(True, True)
        self.root.minsize(900, 640)
        self.session = AnalysisSession()
        self._paths: dict = {}
        self._preview_refs: dict = {}
        self._log_queue: queue.Queue = queue.Queue()

        handler = QueueLogHandler(self._log_queue)
        logging.getLogger().addHandler(handler)
        logging.getLogger().setLevel(logging.INFO)

        self._set_icon()
        self._build_ui()
        self._refresh_controls()
        self._poll_log_queue()

    def _set_icon(self):
        """Two overlapping frames, drawn programmatically."""
        try:
            size = 32
            img  = Image.new("RGBA", (size, size), (0, 0, 0, 0))
            draw = ImageDraw.Draw(img)
            draw.rectangle([2, 6, 20, 24], outline=(26, 79, 138), width=3)
            draw.rectangle([11, 2, 29, 20], outline=(17, 122, 139), width=3)
            icon = ImageTk.PhotoImage(img)
            self.root.iconphoto(True, icon)
            self._icon_ref = icon   # prevent garbage collection
        except tk.TclError:
            pass

    def _build_ui(self):
        root = self.root

        # Row 1: image slots
        row1 = tk.Frame(root, padx=10, pady=6)
        row1.pack(fill="x")
        self.path_vars = {}
        self.slot_previews = {}
        for slot in AnalysisSession.SLOTS:
            frame = tk.LabelFrame(row1, text=f"Image {slot}", padx=6, pady=4)
            frame.pack(side="left", fill="x", expand=True, padx=(0, 10))
            var = tk.StringVar(value="No file selected")
            self.path_vars[slot] = var
            tk.Label(frame, textvariable=var, width=40, anchor="w").pack(side="left")
            tk.Button(frame, text="Browse...",
                      command=lambda s=slot: self._browse_image(s)).pack(side="left", padx=4)
            preview = tk.Label(frame)
            preview.pack(side="left", padx=4)
            self.slot_previews[slot] = preview

        # Run button + progress
        self.run_btn = tk.Button(root, text="Analyze Images",
                                 command=self._start_analysis,
                                 bg="#2d6a2d", fg="white",
                                 font=("", 11, "bold"), padx=12, pady=6)
        self.run_btn.pack(pady=(6, 2))
        prog_frame = tk.Frame(root, padx=10)
        prog_frame.pack(fill="x")
        self.progress = ttk.Progressbar(prog_frame, mode="indeterminate")
        self.progress.pack(fill="x")
        self.status_label = tk.Label(prog_frame, text="", anchor="w",
                                     font=("", 8), fg="#555")
        self.status_label.pack(fill="x")

        # Results: two cards side by side
        cards = tk.Frame(root, padx=10)
        cards.pack(fill="x")
        self.cards = {
            1: ImageCard(cards, "Image 1 Analysis"),
            2: ImageCard(cards, "Image 2 Analysis"),
        }
        self.cards[1].frame.pack(side="left", fill="both", expand=True, padx=(0, 5))
        self.cards[2].frame.pack(side="left", fill="both", expand=True, padx=(5, 0))

        # Comparison summary
        summary_frame = tk.LabelFrame(root, text="Comparative Analysis Summary",
                                      padx=6, pady=4)
        summary_frame.pack(fill="x", padx=10, pady=(6, 0))
        self.score_label = tk.Label(summary_frame, text="", font=("", 22, "bold"))
        self.score_label.pack()
        self.summary_box = tk.Text(summary_frame, height=6, wrap="word",
                                   state="disabled", font=("", 9))
        self.summary_box.pack(fill="x")
        btns = tk.Frame(summary_frame)
        btns.pack(pady=4)
        self.csv_btn = tk.Button(btns, text="Export CSV", command=self._export_csv)
        self.csv_btn.pack(side="left", padx=4)
        self.pdf_btn = tk.Button(btns, text="Export PDF", command=self._export_pdf)
        self.pdf_btn.pack(side="left", padx=4)

        # Log
        log_frame = tk.LabelFrame(root, text="Log", padx=4, pady=4)
        log_frame.pack(fill="both", expand=True, padx=10, pady=(6, 10))
        vsb = tk.Scrollbar(log_frame)
        vsb.pack(side="right", fill="y")
        self.log_box = tk.Text(log_frame, height=6, width=100,
                               yscrollcommand=vsb.set, state="disabled",
                               font=("Courier", 9))
        self.log_box.pack(fill="both", expand=True)
        vsb.config(command=self.log_box.yview)

    # -- State-driven rendering -----------------------------------------------

    def _refresh_controls(self):
        state = self.session.state
        self.run_btn.config(state="normal" if self.session.can_analyze else "disabled",
                            text="Analyzing..." if state is SessionState.LOADING
                            else "Analyze Images")
        export_state = "normal" if state is SessionState.READY else "disabled"
        self.csv_btn.config(state=export_state)
        self.pdf_btn.config(state=export_state)

        if state is SessionState.LOADING:
            self.progress.start(12)
            self.status_label.config(text="Analyzing...")
        else:
            self.progress.stop()
            self.status_label.config(text={
                SessionState.IDLE:   "",
                SessionState.READY:  "Done.",
                SessionState.FAILED: "Analysis failed.",
            }[state])

        if state is SessionState.READY:
            self._show_result(self.session.result)
        elif state is not SessionState.LOADING:
            self._clear_result()

    def _show_result(self, result: AnalysisResult):
        self.cards[1].show(self.session.image(1), result.image1)
        self.cards[2].show(self.session.image(2), result.image2)
        score = result.similarity_score
        color = "#1D6A3A" if score > 75 else "#9A6B00" if score > 40 else "#A11"
        self.score_label.config(text=f"{score}%", fg=color)
        self._set_summary(result.summary)

    def _clear_result(self):
        for card in self.cards.values():
            card.clear()
        self.score_label.config(text="")
        self._set_summary(self.session.error or "")

    def _set_summary(self, text: str):
        self.summary_box.configure(state="normal")
        self.summary_box.delete("1.0", tk.END)
        self.summary_box.insert(tk.END, text)
        self.summary_box.configure(state="disabled")

    # -- Event handlers -------------------------------------------------------

    def _browse_image(self, slot: int):
        if self.session.state is SessionState.LOADING:
            self.log("Analysis in progress; wait for it to finish.")
            return
        exts = " ".join(f"*{e}" for e in sorted(IMG_EXTS))
        path = filedialog.askopenfilename(title=f"Select Image {slot}",
                                          filetypes=[("Image files", exts)])
        if not path:
            return
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            messagebox.showerror("Open failed", str(e))
            return
        self.session.set_image(slot, data)
        self._paths[slot] = path
        self.path_vars[slot].set(Path(path).name)
        try:
            photo = _thumbnail(data)
            self._preview_refs[slot] = photo
            self.slot_previews[slot].config(image=photo)
        except (OSError, ValueError):
            self.slot_previews[slot].config(image="")
            self.log(f"Preview unavailable for {Path(path).name}.")
        self._refresh_controls()

    def _start_analysis(self):
        if not self.session.can_analyze:
            self.log("Please select two images first.")
            return
        self.session.begin()
        self._refresh_controls()
        threading.Thread(target=self._run_analysis, daemon=True).start()

    def _run_analysis(self):
        self.log(f"Comparing {self._name(1)} vs {self._name(2)}...")
        try:
            state = self.session.execute(analyze)
        except Exception:
            logger.exception("Unexpected error during analysis")
        else:
            if state is SessionState.READY:
                result = self.session.result
                self.log(f"   {result.image1.classification} vs {result.image2.classification}"
                         f"  |  similarity {result.similarity_score}%")
        self.root.after(0, self._refresh_controls)

    def _name(self, slot: int) -> str:
        path = self._paths.get(slot)
        return Path(path).name if path else f"Image {slot}"

    def _names(self):
        return [self._name(1), self._name(2)]

    # -- Export ---------------------------------------------------------------

    def _export_csv(self):
        path = filedialog.asksaveasfilename(defaultextension=".csv",
                                            filetypes=[("CSV", "*.csv")])
        if not path:
            return
        try:
            out = write_result_csv(self.session.result, path, self._names())
            self.log(f"CSV saved to {out}")
        except OSError as e:
            messagebox.showerror("Export failed", str(e))

    def _export_pdf(self):
        path = filedialog.asksaveasfilename(defaultextension=".pdf",
                                            filetypes=[("PDF", "*.pdf")])
        if not path:
            return
        try:
            generate_pdf_report(path, self.session.result, self._names())
            self.log(f"PDF saved to {path}")
        except OSError as e:
            messagebox.showerror("Export failed", str(e))

    # -- Logging --------------------------------------------------------------

    def _poll_log_queue(self):
        try:
            while True:
                msg = self._log_queue.get_nowait()
                self.log_box.configure(state="normal")
                self.log_box.insert(tk.END, msg + "\n")
                self.log_box.see(tk.END)
                self.log_box.configure(state="disabled")
        except queue.Empty:
            pass
        self.root.after(100, self._poll_log_queue)

    def log(self, msg: str):
        self._log_queue.put(msg)

    def run(self):
        self.root.mainloop()
