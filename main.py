from dotenv import load_dotenv

from vector_demo.console import run

load_dotenv()

if __name__ == "__main__":
    run()
