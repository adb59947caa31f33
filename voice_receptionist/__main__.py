from voice_receptionist.main import run

run()
