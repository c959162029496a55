"""Rendering typed React Query hooks and mapping Rust types to TypeScript."""