from inventario.main import run

run()
