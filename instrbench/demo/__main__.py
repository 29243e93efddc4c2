from instrbench.demo.workloads import build_registry
from instrbench.cli import main

registry = build_registry()

if __name__ == "__main__":
    main(registry)
