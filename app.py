# app.py
"""
Entrypoint de la aplicación.

Uso:
  python app.py migrate --db flexo.db
  python app.py seed
  python app.py params show
  python app.py calcular LEN-500G 10000 --unidad unidades --tolerancia 10
  python app.py confirmar LEN-500G 10000 --sustituto capa1=m2
  python app.py ordenes listar
"""

from flexo.adapters.cli import main

if __name__ == "__main__":
    main()
