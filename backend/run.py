from casino import create_app, socketio, start_background_rounds, rounds

app = create_app()

if __name__ == '__main__':
    start_background_rounds(app)
    try:
        # Use SocketIO server to enable websockets in dev
        socketio.run(app, debug=True, use_reloader=False)
    finally:
        rounds.stop()
