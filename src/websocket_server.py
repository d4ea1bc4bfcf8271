import asyncio
import base64
import json
import sys
import time
import traceback

import cv2
import websockets

from config import (WEBSOCKET_HOST, WEBSOCKET_PORT, CAMERA_INDEX, CAMERA_WIDTH, CAMERA_HEIGHT,
                    TARGET_FPS, PREVIEW_JPEG_QUALITY, scale_to_neck_thresholds)
from fps_counter import FpsCounter


def monotonic_ms():
    return time.monotonic() * 1000


class WebSocketServer:
    """
    Camera loop and client fan-out.

    Also serves as the engine's notifier: alert signals raised while a frame
    is processed are queued and broadcast right after that frame.
    """
    def __init__(self, host=WEBSOCKET_HOST, port=WEBSOCKET_PORT):
        self.host = host
        self.port = port
        self.clients = set()
        self.detector = None  # Will be set externally
        self.engine = None  # Will be set externally
        self.camera = None
        self.is_monitoring = False
        self.monitoring_task = None
        self.fps_counter = FpsCounter(monotonic_ms())
        self.pending_messages = []
        self.last_status = None

    # Notifier interface used by PostureEngine
    def raise_alert(self, status):
        print(f"Posture alert raised ({status.angle_degrees:.1f}°)", flush=True)
        self.pending_messages.append({
            'type': 'posture_alert',
            'data': status.to_dict()
        })

    def hide_alert(self):
        print("Posture alert cleared", flush=True)
        self.pending_messages.append({'type': 'posture_alert_cleared'})

    async def flush_pending(self):
        messages, self.pending_messages = self.pending_messages, []
        for message in messages:
            await self.send(message)

    async def register(self, websocket):
        self.clients.add(websocket)
        print(f"Client connected ({len(self.clients)} total)", flush=True)

    async def unregister(self, websocket):
        self.clients.discard(websocket)
        print(f"Client disconnected ({len(self.clients)} total)", flush=True)
        if not self.clients:
            await self.stop_monitoring()

    async def send(self, data):
        """Send data to all connected clients."""
        if not self.clients:
            return
        message = json.dumps(data)
        await asyncio.gather(
            *[client.send(message) for client in self.clients],
            return_exceptions=True
        )

    async def handler(self, websocket):
        await self.register(websocket)
        try:
            async for message in websocket:
                await self.process_message(websocket, message)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            await self.unregister(websocket)

    async def process_message(self, websocket, message):
        """Process incoming message from client."""
        try:
            data = json.loads(message)
            msg_type = data.get('type')

            if msg_type == 'start_monitoring':
                await self.start_monitoring()

            elif msg_type == 'stop_monitoring':
                await self.stop_monitoring()

            elif msg_type == 'set_thresholds':
                await self.handle_set_thresholds(websocket, data)

            elif msg_type == 'get_status':
                await websocket.send(json.dumps({
                    'type': 'status',
                    'data': {
                        'is_monitoring': self.is_monitoring,
                        'thresholds': dict(self.engine.thresholds) if self.engine else None,
                        'alert_shown': self.engine.state.alert_shown if self.engine else False,
                        'fps': self.fps_counter.fps
                    }
                }))

            else:
                await websocket.send(json.dumps({
                    'type': 'error',
                    'message': f'Unknown message type: {msg_type}'
                }))

        except Exception as e:
            await websocket.send(json.dumps({
                'type': 'error',
                'message': str(e)
            }))

    async def handle_set_thresholds(self, websocket, data):
        """Update neck angle thresholds from a sensitivity scale (1.0-5.0) or explicit values."""
        if not self.engine:
            raise ValueError('Posture engine not initialized')

        if 'sensitivity' in data:
            good, warning = scale_to_neck_thresholds(float(data['sensitivity']))
        else:
            good = float(data.get('good', self.engine.thresholds['good']))
            warning = float(data.get('warning', self.engine.thresholds['warning']))

        self.engine.set_thresholds(good, warning)
        print(f"Thresholds updated: good={good:.1f}, warning={warning:.1f}", flush=True)

        await websocket.send(json.dumps({
            'type': 'thresholds_updated',
            'success': True,
            'good': good,
            'warning': warning
        }))

    async def start_monitoring(self):
        """Start camera and monitoring loop."""
        if self.is_monitoring:
            return

        self.camera = cv2.VideoCapture(CAMERA_INDEX)

        self.camera.set(cv2.CAP_PROP_FRAME_WIDTH, CAMERA_WIDTH)
        self.camera.set(cv2.CAP_PROP_FRAME_HEIGHT, CAMERA_HEIGHT)
        self.camera.set(cv2.CAP_PROP_FPS, TARGET_FPS)
        self.camera.set(cv2.CAP_PROP_BUFFERSIZE, 1)  # Reduce buffer to get latest frames

        if not self.camera.isOpened():
            self.camera.release()
            self.camera = None
            await self.send({
                'type': 'error',
                'message': 'Failed to open camera'
            })
            return

        self.is_monitoring = True
        self.fps_counter.reset(monotonic_ms())
        self.monitoring_task = asyncio.create_task(self.monitoring_loop())
        print("Monitoring started", flush=True)

        await self.send({
            'type': 'monitoring_started',
            'success': True
        })

    async def stop_monitoring(self):
        """Stop camera and monitoring loop."""
        if not self.is_monitoring:
            return

        self.is_monitoring = False

        if self.monitoring_task:
            self.monitoring_task.cancel()
            try:
                await self.monitoring_task
            except asyncio.CancelledError:
                pass
            self.monitoring_task = None

        if self.camera:
            self.camera.release()
            self.camera = None

        # Drop the streak and any pending auto-hide along with the frame source
        if self.engine:
            self.engine.reset()
        self.last_status = None
        await self.flush_pending()
        print("Monitoring stopped", flush=True)

        await self.send({
            'type': 'monitoring_stopped',
            'success': True
        })

    async def monitoring_loop(self):
        """Continuously capture and analyze frames."""
        frame_interval = 1.0 / TARGET_FPS
        try:
            while self.is_monitoring:
                if not self.camera or not self.camera.isOpened():
                    break

                ret, frame = self.camera.read()
                now_ms = monotonic_ms()
                if not ret:
                    self.engine.tick(now_ms)
                    await self.flush_pending()
                    await asyncio.sleep(frame_interval)
                    continue

                landmarks = self.detector.detect(frame, now_ms)
                if landmarks is None:
                    # Nobody detected: keep the current streak, only run due timers
                    self.engine.tick(now_ms)
                else:
                    self.last_status = self.engine.process(landmarks, now_ms)
                fps = self.fps_counter.update(now_ms)

                await self.flush_pending()

                # Smaller preview reduces encoding/decoding CPU time
                preview_frame = cv2.resize(frame, (CAMERA_WIDTH // 2, CAMERA_HEIGHT // 2),
                                           interpolation=cv2.INTER_LINEAR)
                _, buffer = cv2.imencode('.jpg', preview_frame, [cv2.IMWRITE_JPEG_QUALITY, PREVIEW_JPEG_QUALITY])
                frame_base64 = base64.b64encode(buffer).decode('utf-8')

                result = self.last_status.to_dict() if self.last_status else {}
                result['person_detected'] = landmarks is not None
                result['fps'] = fps
                result['frame'] = frame_base64

                await self.send({
                    'type': 'posture_result',
                    'data': result
                })

                await asyncio.sleep(frame_interval)

        except asyncio.CancelledError:
            pass
        except Exception as e:
            print(f"ERROR in monitoring loop: {e}", file=sys.stderr, flush=True)
            print(f"Traceback: {traceback.format_exc()}", file=sys.stderr, flush=True)
            await self.send({
                'type': 'error',
                'message': f'Monitoring error: {str(e)}'
            })
        finally:
            # Loop ended on its own (camera lost or error): stop_monitoring was not called
            if self.is_monitoring:
                self.monitoring_task = None
                await self.stop_monitoring()

    async def start(self):
        async with websockets.serve(self.handler, self.host, self.port):
            await asyncio.Future()
