import asyncio
import logging
import threading

import wx

from activity_meter.constants import INTENSITY_LEVELS
from activity_meter.sinks import BaseSink, format_result, indicator_states

log = logging.getLogger("activity_meter.gui")

DOT_ON_COLOUR = (46, 160, 67)
DOT_OFF_COLOUR = (200, 200, 200)


class WxSink(BaseSink):
    """Forward pipeline output to the frame on the wx main thread."""

    def __init__(self):
        self.frame = None

    def attach(self, frame):
        self.frame = frame

    def status(self, text: str) -> None:
        if self.frame is not None:
            wx.CallAfter(self.frame.show_status, text)

    def prediction(self, result) -> None:
        if self.frame is not None:
            wx.CallAfter(self.frame.show_prediction, result)


class UIFrame(wx.Frame):
    def __init__(self, parent, title, controller, loop):
        super().__init__(parent, title=title, size=wx.Size(640, 420))
        panel = wx.Panel(self)

        # asyncio loop running the pipeline in a background thread
        self.controller = controller
        self.loop = loop

        # UI ELEMENTS
        title_label = wx.StaticText(panel, label="Activity Meter")
        title_font = title_label.GetFont()
        title_font.PointSize += 6
        title_font.MakeBold()
        title_label.SetFont(title_font)

        self.status_label = wx.StaticText(panel, label="Click 'Start' to collect data.")
        font = self.status_label.GetFont()
        font.PointSize += 2
        self.status_label.SetFont(font)

        self.result_label = wx.StaticText(panel, label="Waiting for activity...")
        result_font = self.result_label.GetFont()
        result_font.PointSize = 24
        result_font.MakeBold()
        self.result_label.SetFont(result_font)

        # One dot per intensity level, exactly one is lit
        dot_sizer = wx.BoxSizer(wx.HORIZONTAL)
        self.dots = []
        for _ in range(INTENSITY_LEVELS):
            dot = wx.StaticText(panel, label="●")
            dot_font = dot.GetFont()
            dot_font.PointSize = 28
            dot.SetFont(dot_font)
            dot.SetForegroundColour(DOT_OFF_COLOUR)
            dot_sizer.Add(dot, 0, wx.ALL, 8)
            self.dots.append(dot)

        self.start_button = wx.Button(panel, label="Start", size=wx.Size(200, 80))
        self.start_button.Bind(wx.EVT_BUTTON, self.on_start_click)

        self.Bind(wx.EVT_CLOSE, self.on_close)

        # Layout
        outer_sizer = wx.BoxSizer(wx.VERTICAL)
        outer_sizer.Add(title_label, 0, wx.ALL | wx.ALIGN_CENTER_HORIZONTAL, 10)
        outer_sizer.Add(self.start_button, 0, wx.ALL | wx.ALIGN_CENTER_HORIZONTAL, 5)
        outer_sizer.Add(self.result_label, 0, wx.ALL | wx.ALIGN_CENTER_HORIZONTAL, 10)
        outer_sizer.Add(dot_sizer, 0, wx.ALL | wx.ALIGN_CENTER_HORIZONTAL, 5)
        outer_sizer.Add(self.status_label, 0, wx.ALL | wx.ALIGN_CENTER_HORIZONTAL, 20)

        panel.SetSizer(outer_sizer)
        self.Center()

    # Start
    def on_start_click(self, event):
        """Called when the 'Start' button is clicked."""
        self.start_button.Disable()
        future = asyncio.run_coroutine_threadsafe(self.controller.start(), self.loop)
        future.add_done_callback(self._on_started)

    def _on_started(self, future):
        try:
            started = future.result()
        except Exception:
            log.exception("Starting capture failed")
            started = False
        if not started:
            # Let the user try again (e.g. after enabling remote access)
            wx.CallAfter(self.start_button.Enable)

    # Sink targets, always called on the wx main thread
    def show_status(self, text: str):
        self.status_label.SetLabel(text)
        self.Layout()

    def show_prediction(self, result):
        self.result_label.SetLabel(format_result(result))
        for dot, on in zip(self.dots, indicator_states(result.level)):
            dot.SetForegroundColour(DOT_ON_COLOUR if on else DOT_OFF_COLOUR)
            dot.Refresh()
        self.Layout()

    # Window close
    def on_close(self, event):
        """Ensure capture and the event loop are stopped when the window closes."""
        self.controller.stop()
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.Destroy()


def run_gui(pipeline, controller, sink: WxSink) -> int:
    """
    Run the wx main loop on this thread and the pipeline's event loop in a
    background thread. Asset loading starts right away; the Start button is
    usable even if it fails.
    """
    loop = asyncio.new_event_loop()
    loop_thread = threading.Thread(target=loop.run_forever, daemon=True)
    loop_thread.start()

    app = wx.App()
    frame = UIFrame(None, "Activity Meter", controller, loop)
    sink.attach(frame)
    frame.Show()

    asyncio.run_coroutine_threadsafe(pipeline.load_assets(), loop)
    app.MainLoop()

    loop_thread.join(timeout=2.0)
    return 0
