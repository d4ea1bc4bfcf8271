import asyncio
import sys
import os
import traceback
from pose_detector import PostureDetector
from posture_engine import PostureEngine
from websocket_server import WebSocketServer
from config import WEBSOCKET_HOST, WEBSOCKET_PORT, AUTO_HIDE_MODE

class PostureService:
    def __init__(self):
        print("Initializing Neck Posture Service...", flush=True)

        if getattr(sys, 'frozen', False):
            print(f"Running as executable from: {sys._MEIPASS}", flush=True)
        else:
            print(f"Running as script from: {os.path.dirname(__file__)}", flush=True)

        try:
            print("Initializing PostureDetector...", flush=True)
            self.detector = PostureDetector()
            print("PostureDetector initialized successfully", flush=True)

            print("Initializing WebSocketServer...", flush=True)
            self.ws_server = WebSocketServer()

            # The server relays the engine's alert signals to clients
            print(f"Initializing PostureEngine (auto hide mode: {AUTO_HIDE_MODE})...", flush=True)
            self.engine = PostureEngine(notifier=self.ws_server)

            self.ws_server.detector = self.detector
            self.ws_server.engine = self.engine

            self.running = False
            print("Service initialization complete", flush=True)
        except Exception as e:
            print(f"ERROR during initialization: {e}", file=sys.stderr, flush=True)
            print(f"Traceback: {traceback.format_exc()}", file=sys.stderr, flush=True)
            raise

    async def run(self):
        """Run the WebSocket server and wait for client connections."""
        self.running = True

        try:
            print(f"Starting WebSocket server on ws://{WEBSOCKET_HOST}:{WEBSOCKET_PORT}", flush=True)
            await self.ws_server.start()
        except Exception as e:
            print(f"ERROR during service runtime: {e}", file=sys.stderr, flush=True)
            print(f"Traceback: {traceback.format_exc()}", file=sys.stderr, flush=True)
            raise
        finally:
            self.running = False
            await self.ws_server.stop_monitoring()
            self.engine.shutdown()
            self.detector.close()
            print("Service shutdown complete", flush=True)

def main():
    try:
        service = PostureService()
        asyncio.run(service.run())
    except KeyboardInterrupt:
        print("Service stopped by user", flush=True)
    except Exception as e:
        print(f"FATAL ERROR: {e}", file=sys.stderr, flush=True)
        print(f"Traceback: {traceback.format_exc()}", file=sys.stderr, flush=True)
        sys.exit(1)

if __name__ == "__main__":
    main()
